from pathlib import Path
import logging
import os

from azure.storage.blob import BlobServiceClient
from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError

from recruitai.utils.errors import NotFound

__all__ = ["StorageService", "LocalStorage", "AzureBlobStorage", "get_storage"]

logger = logging.getLogger(__name__)


class StorageService:
    """Stores accepted upload payloads by relative path.

    Paths look like ``<purpose>/<user_id>/<stored name>``. Reads return a
    ``bytearray`` so the caller can zero it once processing is done.
    """

    backend = "abstract"

    def save_file(self, path: str, content: bytes) -> str:
        raise NotImplementedError

    def get_file(self, path: str) -> bytearray:
        raise NotImplementedError

    def delete_file(self, path: str) -> None:
        raise NotImplementedError


class LocalStorage(StorageService):
    """Files under a local directory (development, tests, single host)."""

    backend = "local"

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        full = (self.root / path).resolve()
        if self.root not in full.parents:
            raise ValueError(f"Path escapes storage root: {path}")
        return full

    def save_file(self, path: str, content: bytes) -> str:
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        with open(full, "wb") as f:
            f.write(content)
        os.chmod(full, 0o600)
        logger.info(f"[storage] Saved file: {path}")
        return path

    def get_file(self, path: str) -> bytearray:
        full = self._resolve(path)
        if not full.exists():
            raise NotFound("File")
        buffer = bytearray(full.stat().st_size)
        with open(full, "rb") as f:
            f.readinto(buffer)
        return buffer

    def delete_file(self, path: str) -> None:
        full = self._resolve(path)
        if full.exists():
            full.unlink()
            logger.info(f"[storage] Deleted file: {path}")


class AzureBlobStorage(StorageService):
    """Files in an Azure Blob Storage container."""

    backend = "azure"

    def __init__(self, connection_string: str, container_name: str):
        self.blob_service_client = BlobServiceClient.from_connection_string(connection_string)
        self.container_name = container_name
        self._ensure_container_exists()

    def _ensure_container_exists(self) -> None:
        try:
            self.blob_service_client.create_container(self.container_name)
            logger.info(f"[storage] Created container '{self.container_name}'")
        except ResourceExistsError:
            logger.info(f"[storage] Container '{self.container_name}' exists")

    def _blob(self, path: str):
        container_client = self.blob_service_client.get_container_client(self.container_name)
        return container_client.get_blob_client(path)

    def save_file(self, path: str, content: bytes) -> str:
        try:
            self._blob(path).upload_blob(bytes(content), overwrite=True)
            logger.info(f"[storage] Saved blob: {path}")
            return path
        except Exception as e:
            logger.error(f"[storage] Failed to save blob {path}: {e}")
            raise

    def get_file(self, path: str) -> bytearray:
        try:
            return bytearray(self._blob(path).download_blob().readall())
        except ResourceNotFoundError as e:
            raise NotFound("File") from e

    def delete_file(self, path: str) -> None:
        try:
            self._blob(path).delete_blob()
            logger.info(f"[storage] Deleted blob: {path}")
        except ResourceNotFoundError:
            pass


def get_storage(settings) -> StorageService:
    """Azure when a connection string is configured, local directory otherwise."""
    if settings.AZURE_STORAGE_CONNECTION_STRING:
        return AzureBlobStorage(
            settings.AZURE_STORAGE_CONNECTION_STRING,
            settings.AZURE_STORAGE_CONTAINER_NAME,
        )
    return LocalStorage(settings.UPLOAD_DIR)
