# -*- coding: utf-8 -*-
"""
Object storage for uploaded audio.

Two backends share one interface:
- LocalObjectStore: files under a root directory, metadata in a JSON sidecar
- S3ObjectStore: any S3-compatible bucket via boto3, ACL JSON in user metadata

Both return the ACL policy stored with an object and stream its content;
neither makes any access decision.
"""
from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from podmarket.infra.log import get_logger
from podmarket.services.errors import ObjectNotFound, UpstreamFailure
from podmarket.services.object_acl import (
    InvalidAclPolicy,
    ObjectAclPolicy,
    entity_key,
    normalize_object_path,
)

logger = get_logger('podmarket.storage')

CHUNK_SIZE = 64 * 1024
ACL_METADATA_KEY = "acl-policy"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class StoredObject:
    path: str
    content_type: str
    size: Optional[int]
    chunks: Iterator[bytes]


class ObjectStore(ABC):
    """Capability interface for object metadata and content."""

    @abstractmethod
    def get_acl(self, path: str) -> ObjectAclPolicy:
        """Return the ACL stored with `path`. Raises ObjectNotFound."""

    @abstractmethod
    def open(self, path: str) -> StoredObject:
        """Open `path` for streaming. Raises ObjectNotFound."""

    @abstractmethod
    def put(self, path: str, stream: BinaryIO, content_type: str, acl: ObjectAclPolicy) -> str:
        """Store content with its ACL and return the canonical path."""

    @staticmethod
    def canonical(path: str) -> str:
        canonical = normalize_object_path(path)
        if canonical is None:
            raise ObjectNotFound()
        return canonical


class LocalObjectStore(ObjectStore):
    """Filesystem backend; `<key>` holds content and `<key>.meta.json` its metadata."""

    META_SUFFIX = ".meta.json"

    def __init__(self, root: str):
        self.root = os.path.abspath(root)
        os.makedirs(self.root, exist_ok=True)

    def _file_path(self, canonical: str) -> str:
        full = os.path.abspath(os.path.join(self.root, *entity_key(canonical).split("/")))
        if not full.startswith(self.root + os.sep):
            raise ObjectNotFound()
        return full

    def _read_meta(self, canonical: str) -> dict:
        file_path = self._file_path(canonical)
        meta_path = file_path + self.META_SUFFIX
        if not os.path.isfile(file_path) or not os.path.isfile(meta_path):
            raise ObjectNotFound()
        try:
            with open(meta_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except ValueError:
            logger.error("Unreadable object metadata", object_path=canonical)
            raise ObjectNotFound()

    def get_acl(self, path: str) -> ObjectAclPolicy:
        canonical = self.canonical(path)
        meta = self._read_meta(canonical)
        if "acl_policy" not in meta:
            raise ObjectNotFound()
        try:
            return ObjectAclPolicy.from_dict(meta["acl_policy"])
        except InvalidAclPolicy as exc:
            logger.error("Invalid ACL policy on object", object_path=canonical, reason=str(exc))
            raise ObjectNotFound()

    def open(self, path: str) -> StoredObject:
        canonical = self.canonical(path)
        meta = self._read_meta(canonical)
        file_path = self._file_path(canonical)

        def _chunks() -> Iterator[bytes]:
            with open(file_path, "rb") as f:
                while True:
                    chunk = f.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    yield chunk

        return StoredObject(
            path=canonical,
            content_type=meta.get("content_type") or DEFAULT_CONTENT_TYPE,
            size=os.path.getsize(file_path),
            chunks=_chunks(),
        )

    def put(self, path: str, stream: BinaryIO, content_type: str, acl: ObjectAclPolicy) -> str:
        canonical = self.canonical(path)
        file_path = self._file_path(canonical)
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        with open(file_path, "wb") as f:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                f.write(chunk)
        with open(file_path + self.META_SUFFIX, "w", encoding="utf-8") as f:
            json.dump({"content_type": content_type, "acl_policy": acl.to_dict()}, f)
        logger.info("Object stored", object_path=canonical, backend="local")
        return canonical


class S3ObjectStore(ObjectStore):
    """S3-compatible backend (AWS, Wasabi, MinIO...)."""

    def __init__(self, bucket: str, endpoint_url: Optional[str] = None, region: Optional[str] = None,
                 access_key: Optional[str] = None, secret_key: Optional[str] = None, client=None):
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region
        self.access_key = access_key
        self.secret_key = secret_key
        self._client = client

    def get_s3_client(self):
        """Create (once) the boto3 S3 client."""
        if self._client is None:
            import boto3
            from botocore.config import Config

            self._client = boto3.client(
                "s3",
                endpoint_url=self.endpoint_url,
                region_name=self.region,
                aws_access_key_id=self.access_key,
                aws_secret_access_key=self.secret_key,
                config=Config(s3={"addressing_style": "virtual"}),
            )
        return self._client

    @staticmethod
    def _is_missing(error) -> bool:
        code = str(error.response.get("Error", {}).get("Code", ""))
        return code in ("404", "NoSuchKey", "NotFound")

    def _head(self, canonical: str) -> dict:
        from botocore.exceptions import ClientError

        try:
            return self.get_s3_client().head_object(Bucket=self.bucket, Key=entity_key(canonical))
        except ClientError as exc:
            if self._is_missing(exc):
                raise ObjectNotFound()
            logger.error("S3 head_object failed", object_path=canonical, error=str(exc))
            raise UpstreamFailure(str(exc))

    def get_acl(self, path: str) -> ObjectAclPolicy:
        canonical = self.canonical(path)
        head = self._head(canonical)
        raw = (head.get("Metadata") or {}).get(ACL_METADATA_KEY)
        if not raw:
            raise ObjectNotFound()
        try:
            return ObjectAclPolicy.from_json(raw)
        except InvalidAclPolicy as exc:
            logger.error("Invalid ACL policy on object", object_path=canonical, reason=str(exc))
            raise ObjectNotFound()

    def open(self, path: str) -> StoredObject:
        from botocore.exceptions import ClientError

        canonical = self.canonical(path)
        try:
            response = self.get_s3_client().get_object(Bucket=self.bucket, Key=entity_key(canonical))
        except ClientError as exc:
            if self._is_missing(exc):
                raise ObjectNotFound()
            logger.error("S3 get_object failed", object_path=canonical, error=str(exc))
            raise UpstreamFailure(str(exc))

        return StoredObject(
            path=canonical,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
            size=response.get("ContentLength"),
            chunks=response["Body"].iter_chunks(chunk_size=CHUNK_SIZE),
        )

    def put(self, path: str, stream: BinaryIO, content_type: str, acl: ObjectAclPolicy) -> str:
        from botocore.exceptions import BotoCoreError, ClientError

        canonical = self.canonical(path)
        try:
            self.get_s3_client().upload_fileobj(
                stream,
                self.bucket,
                entity_key(canonical),
                ExtraArgs={
                    "ContentType": content_type,
                    "Metadata": {ACL_METADATA_KEY: acl.to_json()},
                },
            )
        except (BotoCoreError, ClientError) as exc:
            logger.error("S3 upload failed", object_path=canonical, error=str(exc))
            raise UpstreamFailure(str(exc))
        logger.info("Object stored", object_path=canonical, backend="s3")
        return canonical


def build_object_store(config) -> ObjectStore:
    """Pick the backend from app config (OBJECT_STORE_BACKEND)."""
    backend = (config.get("OBJECT_STORE_BACKEND") or "local").lower()
    if backend == "s3":
        return S3ObjectStore(
            bucket=config.get("OBJECT_STORE_BUCKET"),
            endpoint_url=config.get("S3_ENDPOINT_URL"),
            region=config.get("S3_REGION"),
            access_key=config.get("S3_ACCESS_KEY_ID"),
            secret_key=config.get("S3_SECRET_ACCESS_KEY"),
        )
    if backend == "local":
        return LocalObjectStore(config.get("OBJECT_STORE_ROOT"))
    raise ValueError(f"Unknown OBJECT_STORE_BACKEND: {backend}")
