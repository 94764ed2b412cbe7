"""Content store adapters and attestation page rendering."""

from vouchledger.infrastructure.content.base import ContentStore
from vouchledger.infrastructure.content.page_renderer import (
    PageRenderer,
    genesis_page_path,
    get_page_renderer,
    origin_page_path,
    parse_peer_page_path,
    peer_page_path,
)
from vouchledger.infrastructure.content.sql_content_store import SqlContentStore

__all__ = [
    "ContentStore",
    "PageRenderer",
    "SqlContentStore",
    "genesis_page_path",
    "get_page_renderer",
    "origin_page_path",
    "parse_peer_page_path",
    "peer_page_path",
]
