"""
Service layer for buildsource.

Contains business logic that orchestrates domain objects and infrastructure:
- GitSourceResolver: Clone, update and pin a source mirror
- HistoryMiner: Changelog reconstruction from recipe tags
- write_history_xml: history.xml serialization

Services are the primary API for commands to use.
"""

from .source_service import GitSourceResolver
from .history_service import HistoryMiner, build_package_history
from .changelog_service import render_history_xml, write_history_xml

__all__ = [
    'GitSourceResolver',
    'HistoryMiner',
    'build_package_history',
    'render_history_xml',
    'write_history_xml',
]
