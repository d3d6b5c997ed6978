"""
Song routes (alternate catalog schema).

Reads are public; creating, updating and deleting require a bearer token
and the caller is recorded as ``uploadedBy``.  Fetching a song by id counts
as a play.
"""

import logging

from fastapi import APIRouter, Request

from api.deps import CurrentUser, Songs
from api.schemas.envelope import Envelope, PageEnvelope, paginated
from api.schemas.songs import SongCreate, SongOut, SongUpdate
from core.catalog.envelope import page_meta
from core.catalog.query import build_song_query
from core.errors import NotFound

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/songs", tags=["songs"])


@router.get("", response_model=PageEnvelope[SongOut], response_model_exclude_none=True)
def list_songs(request: Request, store: Songs) -> PageEnvelope:
    """Active songs filtered by ``genre`` (exact), ``artist`` and ``search``."""
    query = build_song_query(request.query_params)
    songs, total = store.list_page(query)
    items = [SongOut.from_song(song) for song in songs]
    return paginated(items, page_meta(len(items), total, query.window))


@router.get("/{song_id}", response_model=Envelope[SongOut], response_model_exclude_none=True)
def get_song(song_id: str, store: Songs) -> Envelope:
    song = store.play(song_id)
    if song is None:
        raise NotFound("Song not found")
    return Envelope(data=SongOut.from_song(song))


@router.post(
    "", status_code=201, response_model=Envelope[SongOut], response_model_exclude_none=True
)
def create_song(body: SongCreate, user: CurrentUser, store: Songs) -> Envelope:
    song = store.create(uploaded_by=user.id, **body.model_dump())
    return Envelope(message="Song created successfully", data=SongOut.from_song(song))


@router.put("/{song_id}", response_model=Envelope[SongOut], response_model_exclude_none=True)
def update_song(song_id: str, body: SongUpdate, user: CurrentUser, store: Songs) -> Envelope:
    song = store.update(song_id, body.model_dump(exclude_none=True))
    if song is None:
        raise NotFound("Song not found")
    logger.info("Song %s updated by %s", song_id, user.id)
    return Envelope(message="Song updated successfully", data=SongOut.from_song(song))


@router.delete("/{song_id}", response_model=Envelope[dict], response_model_exclude_none=True)
def delete_song(song_id: str, user: CurrentUser, store: Songs) -> Envelope:
    """Soft delete: the song disappears from listings and lookups."""
    if not store.deactivate(song_id):
        raise NotFound("Song not found")
    logger.info("Song %s deleted by %s", song_id, user.id)
    return Envelope(message="Song deleted successfully")
