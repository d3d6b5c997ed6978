"""
Music catalog routes.

``GET    /api/music``             filtered, sorted, paginated listing
``GET    /api/music/search``      relevance-ranked full-text search
``GET    /api/music/statistics``  catalog aggregates
``POST   /api/music``             create (multipart, ``albumArt`` required)
``GET    /api/music/{id}``        fetch one entry
``PUT    /api/music/{id}``        partial update (multipart)
``DELETE /api/music/{id}``        hard delete

Every route requires a bearer token.
"""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile

from api.deps import Music, Uploads, get_current_user
from api.schemas.envelope import Envelope, PageEnvelope, paginated
from api.schemas.music import MusicCreate, MusicOut, MusicPayload, MusicUpdate, StatisticsOut
from core.catalog.envelope import page_meta
from core.catalog.query import QueryBuilder, build_music_query
from core.catalog.statistics import collect_statistics
from core.errors import BadRequest, NotFound, ValidationFailure
from infrastructure.metrics import LatencyTimer, record_statistics_latency

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/music",
    tags=["music"],
    dependencies=[Depends(get_current_user)],
)

TextField = Annotated[str | None, Form()]
GenresField = Annotated[list[str] | None, Form()]
AlbumArtFile = Annotated[UploadFile | None, File(alias="albumArt")]


def _genres_from_form(values: list[str] | None) -> Any:
    """Accept repeated ``genres`` parts or a single JSON array string."""
    if values is None:
        return None
    if len(values) == 1 and values[0].lstrip().startswith("["):
        try:
            return json.loads(values[0])
        except json.JSONDecodeError as exc:
            raise ValidationFailure("All genres must be non-empty strings") from exc
    return values


def _has_file(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)


@router.get("", response_model=PageEnvelope[MusicOut], response_model_exclude_none=True)
def list_music(request: Request, store: Music) -> PageEnvelope:
    """List music filtered by ``search``, ``artist``, ``album`` and ``genre``."""
    query = build_music_query(request.query_params)
    records, total = store.list_page(query)
    items = [MusicOut.model_validate(r) for r in records]
    message = "Music retrieved successfully" if total > 0 else "No music found"
    return paginated(items, page_meta(len(items), total, query.window), message=message)


@router.get("/search", response_model=PageEnvelope[MusicOut], response_model_exclude_none=True)
def search_music(
    store: Music,
    q: Annotated[str | None, Query()] = None,
    page: Annotated[str | None, Query()] = None,
    limit: Annotated[str | None, Query()] = None,
) -> PageEnvelope:
    """Full-text search over title, artist and album, best match first."""
    if q is None or not q.strip():
        raise ValidationFailure("Search query is required")
    window = QueryBuilder().paginate(page, limit).build().window
    hits, total = store.text_search(q.strip(), window)
    items = [
        MusicOut.model_validate(record).model_copy(update={"score": score})
        for record, score in hits
    ]
    return paginated(
        items,
        page_meta(len(items), total, window),
        message="Search completed successfully",
    )


@router.get("/statistics", response_model=Envelope[StatisticsOut])
def music_statistics(store: Music) -> Envelope:
    with LatencyTimer() as timer:
        report = collect_statistics(store)
    record_statistics_latency(timer.elapsed)
    logger.info("Statistics computed in %.1f ms", timer.elapsed * 1000)
    return Envelope(
        message="Music statistics retrieved successfully",
        data=StatisticsOut.from_report(report),
    )


@router.post(
    "",
    status_code=201,
    response_model=Envelope[MusicPayload],
    response_model_exclude_none=True,
)
def create_music(
    store: Music,
    uploads: Uploads,
    title: TextField = None,
    artist: TextField = None,
    album: TextField = None,
    genres: GenresField = None,
    album_art: AlbumArtFile = None,
) -> Envelope:
    payload = MusicCreate(
        title=title,
        artist=artist,
        album=album,
        genres=_genres_from_form(genres),
    )
    if not _has_file(album_art):
        raise BadRequest("Album art picture required")
    url = uploads.save(album_art)
    record = store.create(album_art=url, **payload.model_dump())
    return Envelope(
        message="Music created successfully",
        data=MusicPayload(music=MusicOut.model_validate(record)),
    )


@router.get("/{music_id}", response_model=Envelope[MusicPayload], response_model_exclude_none=True)
def get_music(music_id: str, store: Music) -> Envelope:
    record = store.get(music_id)
    if record is None:
        raise NotFound("Music not found")
    return Envelope(
        message="Music retrieved successfully",
        data=MusicPayload(music=MusicOut.model_validate(record)),
    )


@router.put("/{music_id}", response_model=Envelope[MusicPayload], response_model_exclude_none=True)
def update_music(
    music_id: str,
    store: Music,
    uploads: Uploads,
    title: TextField = None,
    artist: TextField = None,
    album: TextField = None,
    genres: GenresField = None,
    album_art: AlbumArtFile = None,
) -> Envelope:
    """Update any subset of fields; a new ``albumArt`` file replaces the old URL."""
    if store.get(music_id) is None:
        raise NotFound("Music not found")
    changes = MusicUpdate(
        title=title,
        artist=artist,
        album=album,
        genres=_genres_from_form(genres),
    ).model_dump(exclude_none=True)
    if _has_file(album_art):
        changes["album_art"] = uploads.save(album_art)
    record = store.update(music_id, changes)
    if record is None:
        raise NotFound("Music not found")
    return Envelope(
        message="Music updated successfully",
        data=MusicPayload(music=MusicOut.model_validate(record)),
    )


@router.delete("/{music_id}", response_model=Envelope[dict], response_model_exclude_none=True)
def delete_music(music_id: str, store: Music) -> Envelope:
    if not store.delete(music_id):
        raise NotFound("Music not found")
    return Envelope(message="Music deleted successfully")
