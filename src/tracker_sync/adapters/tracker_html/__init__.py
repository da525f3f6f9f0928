"""Adapter for the upstream tracker's HTML page."""

from tracker_sync.adapters.tracker_html.table_parser import parse_tracker_html

__all__ = ["parse_tracker_html"]
