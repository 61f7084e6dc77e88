"""
MongoDB file store.

Uploaded profile documents (photos, CVs, certificates, logos) are kept in
GridFS. The relational side only ever stores the URL returned by save();
it never looks inside the file.

WHY MongoDB for these?
- Binary blobs of varying size, no relational structure
- GridFS chunks large files transparently
- Each file is self-contained, with its folder/content type as metadata
"""

import logging
from dataclasses import dataclass
from typing import Optional

import gridfs
from gridfs.errors import NoFile
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import Request
from pymongo import MongoClient
from pymongo.database import Database

from espacestage.core.config import Settings
from espacestage.core.errors import NotFound

logger = logging.getLogger(__name__)

FILES_BUCKET = "uploads"


@dataclass
class StoredFile:
    file_id: str
    filename: str
    content_type: str
    folder: str
    data: bytes


class FileStore:
    """Interface of the file-hosting collaborator."""

    def save(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        """Store the bytes and return the file id."""
        raise NotImplementedError

    def load(self, file_id: str) -> StoredFile:
        raise NotImplementedError

    def test_connection(self) -> bool:
        return True

    def close(self) -> None:
        pass


class GridFSFileStore(FileStore):
    """GridFS-backed store. The client is created lazily on first use."""

    def __init__(self, settings: Settings):
        self.uri = settings.mongodb_uri
        self.db_name = settings.mongodb_db
        self._client: Optional[MongoClient] = None
        self._fs: Optional[gridfs.GridFS] = None

    @property
    def client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(self.uri, serverSelectionTimeoutMS=5000)
        return self._client

    @property
    def db(self) -> Database:
        return self.client[self.db_name]

    @property
    def fs(self) -> gridfs.GridFS:
        if self._fs is None:
            self._fs = gridfs.GridFS(self.db, collection=FILES_BUCKET)
        return self._fs

    def save(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        file_id = self.fs.put(
            data,
            filename=filename,
            metadata={"folder": folder, "content_type": content_type},
        )
        logger.info("Stored %s (%d bytes) in %s", filename, len(data), folder)
        return str(file_id)

    def load(self, file_id: str) -> StoredFile:
        try:
            grid_out = self.fs.get(ObjectId(file_id))
        except (InvalidId, NoFile):
            raise NotFound("File not found")

        meta = grid_out.metadata or {}
        return StoredFile(
            file_id=file_id,
            filename=grid_out.filename or file_id,
            content_type=meta.get("content_type", "application/octet-stream"),
            folder=meta.get("folder", ""),
            data=grid_out.read(),
        )

    def test_connection(self) -> bool:
        """
        Test if MongoDB is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            # ping command checks connection
            self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("MongoDB connection failed: %s", e)
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._fs = None


def get_file_store(request: Request) -> FileStore:
    return request.app.state.file_store
