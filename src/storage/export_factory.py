# src/storage/export_factory.py — v1
"""Factory: instantiate the export store from configuration."""

from __future__ import annotations

from masterchef.config.settings import Settings
from masterchef.storage.base_export_store import BaseExportStore
from masterchef.storage.local_export_store import LocalExportStore


def create_export_store(settings: Settings) -> BaseExportStore:
    """Create the export store selected by EXPORT_BACKEND.

    Raises:
        ValueError: If the backend is not supported.
    """
    if settings.export_backend == "local":
        return LocalExportStore(root=settings.export_root)

    if settings.export_backend == "s3":
        from masterchef.storage.s3_export_store import S3ExportStore
        if not settings.export_s3_bucket:
            raise ValueError("EXPORT_S3_BUCKET must be set when EXPORT_BACKEND=s3")
        return S3ExportStore(
            bucket=settings.export_s3_bucket,
            region=settings.export_s3_region or None,
            endpoint_url=settings.export_s3_endpoint or None,
        )

    raise ValueError(f"Unsupported export backend: {settings.export_backend!r}")
