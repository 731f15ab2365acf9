"""Adapters for the published sponsor register."""

from __future__ import annotations

from .downloader import HttpSnapshotDownloader
from .page import ATTACHMENT_LINK_SELECTOR, CHANGE_DATE_SELECTOR, GovUkRegisterPage

__all__ = [
    "ATTACHMENT_LINK_SELECTOR",
    "CHANGE_DATE_SELECTOR",
    "GovUkRegisterPage",
    "HttpSnapshotDownloader",
]
