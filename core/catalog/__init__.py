"""
Pure catalog logic: query building, statistics and page math.

Exports:
    Types:      MusicEntry, StatisticsReport, Totals, GenreCount, ArtistStat, AlbumStat
    Query:      QueryBuilder, CatalogQuery, FilterClause, ClauseKind, SortSpec, Window,
                build_music_query, build_song_query, build_playlist_query,
                parse_positive_int
    Statistics: collect_statistics, build_report, SnapshotSource, StatisticsSource
    Envelope:   PageMeta, page_meta, page_count
"""

from core.catalog.envelope import PageMeta, page_count, page_meta
from core.catalog.query import (
    CatalogQuery,
    ClauseKind,
    FilterClause,
    QueryBuilder,
    SortSpec,
    Window,
    build_music_query,
    build_playlist_query,
    build_song_query,
    parse_positive_int,
)
from core.catalog.statistics import (
    SnapshotSource,
    StatisticsSource,
    build_report,
    collect_statistics,
)
from core.catalog.types import (
    AlbumStat,
    ArtistStat,
    GenreCount,
    MusicEntry,
    StatisticsReport,
    Totals,
)

__all__ = [
    # Types
    "MusicEntry",
    "StatisticsReport",
    "Totals",
    "GenreCount",
    "ArtistStat",
    "AlbumStat",
    # Query
    "QueryBuilder",
    "CatalogQuery",
    "FilterClause",
    "ClauseKind",
    "SortSpec",
    "Window",
    "build_music_query",
    "build_song_query",
    "build_playlist_query",
    "parse_positive_int",
    # Statistics
    "collect_statistics",
    "build_report",
    "SnapshotSource",
    "StatisticsSource",
    # Envelope
    "PageMeta",
    "page_meta",
    "page_count",
]
