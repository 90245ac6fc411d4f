# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: SnapshotFileLoader
# -----------------------------------------------------------------------------
import logging
import os
import time
from pathlib import Path

from azure.core.credentials import AzureNamedKeyCredential
from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient

from config.Config import Config
from utility.logging_utils import get_class_logger


class SnapshotFileLoader:
    """
    Downloads a pre-built embeddings dataset from Azure Blob Storage.

    Used on a first run when no local progress file exists, so a fresh
    checkout can start from the shared snapshot instead of re-embedding
    the whole catalog.
    """

    def __init__(
        self,
        cfg: Config,
        *,
        blob_service: BlobServiceClient | None = None,
        logger: logging.Logger | None = None,
    ):
        self.cfg = cfg
        self.logger = logger or get_class_logger(self.__class__)

        if blob_service is not None:
            self.blob_service = blob_service
            return

        start_time = time.time()
        try:
            self.blob_service = BlobServiceClient(
                account_url=f"https://{cfg.storage_account}.blob.core.windows.net",
                credential=AzureNamedKeyCredential(cfg.storage_account, cfg.storage_key),
            )
            elapsed = (time.time() - start_time) * 1000.0
            self.logger.info(
                "Initialised BlobServiceClient for account '%s' (%.1f ms)",
                cfg.storage_account,
                elapsed,
            )
        except Exception as e:
            elapsed = (time.time() - start_time) * 1000.0
            self.logger.exception(
                "Failed to initialise BlobServiceClient after %.1f ms: %s", elapsed, e
            )
            raise

    def download_snapshot(self, dest_path: str | Path) -> Path:
        """
        Download cfg.snapshot_container/cfg.snapshot_blob to dest_path.

        The file is written to a temporary sibling and renamed into place so
        a failed download never leaves a partial progress file behind.
        """
        container = self.cfg.snapshot_container
        blob_name = self.cfg.snapshot_blob
        dest = Path(dest_path)
        tmp = dest.with_name(dest.name + ".download")

        start_time = time.time()
        try:
            self.logger.info(
                "Downloading snapshot '%s' from container '%s' -> %s", blob_name, container, dest
            )
            dest.parent.mkdir(parents=True, exist_ok=True)
            blob_client = self.blob_service.get_blob_client(container, blob_name)
            with tmp.open("wb") as f:
                blob_client.download_blob().readinto(f)
            os.replace(tmp, dest)

            elapsed = (time.time() - start_time) * 1000.0
            self.logger.info(
                "Downloaded snapshot '%s' (%d bytes) in %.1f ms",
                blob_name,
                dest.stat().st_size,
                elapsed,
            )
            return dest
        except ResourceNotFoundError:
            elapsed = (time.time() - start_time) * 1000.0
            self.logger.error(
                "Snapshot '%s' not found in container '%s' (%.1f ms)", blob_name, container, elapsed
            )
            raise
        except AzureError as e:
            elapsed = (time.time() - start_time) * 1000.0
            self.logger.exception(
                "Azure error while downloading '%s' after %.1f ms: %s", blob_name, elapsed, e
            )
            raise
        finally:
            if tmp.exists():
                tmp.unlink()
