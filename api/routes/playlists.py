"""
Playlist routes (alternate catalog schema).

Entries keep a 1-based ``order``; removing a song renumbers the rest.
Fetching a playlist by id counts as a play.  Mutations require a bearer
token and new playlists belong to the caller.
"""

import logging

from fastapi import APIRouter, Request

from api.deps import CurrentUser, Playlists, Songs
from api.schemas.envelope import Envelope, PageEnvelope, paginated
from api.schemas.playlists import AddSongRequest, PlaylistCreate, PlaylistOut, PlaylistUpdate
from core.catalog.envelope import page_meta
from core.catalog.query import build_playlist_query
from core.errors import BadRequest, NotFound
from db.models import Playlist
from db.song_store import DuplicateEntry, PlaylistStore, SongStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/playlists", tags=["playlists"])


def _require(store: PlaylistStore, playlist_id: str) -> Playlist:
    playlist = store.get(playlist_id)
    if playlist is None:
        raise NotFound("Playlist not found")
    return playlist


def _require_songs(songs: SongStore, song_ids: list[str]) -> None:
    for song_id in song_ids:
        if songs.get(song_id) is None:
            raise NotFound("Song not found")


@router.get("", response_model=PageEnvelope[PlaylistOut], response_model_exclude_none=True)
def list_playlists(request: Request, store: Playlists) -> PageEnvelope:
    """Playlists filtered by ``isPublic`` and ``createdBy``."""
    query = build_playlist_query(request.query_params)
    playlists, total = store.list_page(query)
    items = [PlaylistOut.from_playlist(p) for p in playlists]
    return paginated(items, page_meta(len(items), total, query.window))


@router.get(
    "/{playlist_id}", response_model=Envelope[PlaylistOut], response_model_exclude_none=True
)
def get_playlist(playlist_id: str, store: Playlists) -> Envelope:
    playlist = store.play(playlist_id)
    if playlist is None:
        raise NotFound("Playlist not found")
    return Envelope(data=PlaylistOut.from_playlist(playlist))


@router.post(
    "", status_code=201, response_model=Envelope[PlaylistOut], response_model_exclude_none=True
)
def create_playlist(
    body: PlaylistCreate, user: CurrentUser, store: Playlists, songs: Songs
) -> Envelope:
    fields = body.model_dump(exclude={"songs"})
    _require_songs(songs, body.songs)
    playlist = store.create(created_by=user.id, song_ids=body.songs, **fields)
    return Envelope(
        message="Playlist created successfully", data=PlaylistOut.from_playlist(playlist)
    )


@router.put(
    "/{playlist_id}", response_model=Envelope[PlaylistOut], response_model_exclude_none=True
)
def update_playlist(
    playlist_id: str, body: PlaylistUpdate, user: CurrentUser, store: Playlists
) -> Envelope:
    playlist = store.update(playlist_id, body.model_dump(exclude_none=True))
    if playlist is None:
        raise NotFound("Playlist not found")
    logger.info("Playlist %s updated by %s", playlist_id, user.id)
    return Envelope(
        message="Playlist updated successfully", data=PlaylistOut.from_playlist(playlist)
    )


@router.post(
    "/{playlist_id}/songs",
    response_model=Envelope[PlaylistOut],
    response_model_exclude_none=True,
)
def add_song(
    playlist_id: str,
    body: AddSongRequest,
    user: CurrentUser,
    store: Playlists,
    songs: Songs,
) -> Envelope:
    playlist = _require(store, playlist_id)
    _require_songs(songs, [body.song_id])
    try:
        store.add_song(playlist, body.song_id)
    except DuplicateEntry as exc:
        raise BadRequest("Song already exists in playlist") from exc
    return Envelope(
        message="Song added to playlist successfully",
        data=PlaylistOut.from_playlist(playlist),
    )


@router.delete(
    "/{playlist_id}/songs/{song_id}",
    response_model=Envelope[PlaylistOut],
    response_model_exclude_none=True,
)
def remove_song(playlist_id: str, song_id: str, user: CurrentUser, store: Playlists) -> Envelope:
    playlist = _require(store, playlist_id)
    store.remove_song(playlist, song_id)
    return Envelope(
        message="Song removed from playlist successfully",
        data=PlaylistOut.from_playlist(playlist),
    )


@router.delete(
    "/{playlist_id}", response_model=Envelope[dict], response_model_exclude_none=True
)
def delete_playlist(playlist_id: str, user: CurrentUser, store: Playlists) -> Envelope:
    if not store.delete(playlist_id):
        raise NotFound("Playlist not found")
    logger.info("Playlist %s deleted by %s", playlist_id, user.id)
    return Envelope(message="Playlist deleted successfully")
