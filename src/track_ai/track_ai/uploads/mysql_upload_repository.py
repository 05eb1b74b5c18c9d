from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional, Sequence

import mysql.connector

from ..core.enums import UploadStatus
from ..core.exceptions import ConflictError, NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Upload
from .repository import UploadRepository

_SELECT = """
    SELECT u.upload_id, u.user_id, u.project_id, u.project_external_id, u.title, u.client_request_id,
           u.status, u.remarks, u.document_type, u.tags, u.latitude, u.longitude,
           u.original_filename, u.mime_type, u.size_bytes, u.local_path,
           u.entry_id, u.remote_file_id, u.last_error,
           u.locked_at, u.locked_reason, u.created_at, u.deleted_at,
           (p.status = 'closed') AS project_closed
    FROM uploads u
    LEFT JOIN projects p ON p.project_id = u.project_id
"""


def _tags(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        value = json.loads(value)
    return tuple(str(t) for t in value)


def _to_upload(r: dict[str, Any]) -> Upload:
    return Upload(
        upload_id=int(r["upload_id"]),
        user_id=int(r["user_id"]),
        project_id=int(r["project_id"]) if r.get("project_id") is not None else None,
        project_external_id=r["project_external_id"],
        title=r["title"],
        client_request_id=r["client_request_id"],
        status=UploadStatus(r["status"]),
        project_closed=bool(r.get("project_closed")),
        remarks=r.get("remarks"),
        document_type=r.get("document_type"),
        tags=_tags(r.get("tags")),
        latitude=float(r["latitude"]) if r.get("latitude") is not None else None,
        longitude=float(r["longitude"]) if r.get("longitude") is not None else None,
        original_filename=r.get("original_filename"),
        mime_type=r.get("mime_type"),
        size_bytes=int(r["size_bytes"]) if r.get("size_bytes") is not None else None,
        local_path=r.get("local_path"),
        entry_id=r.get("entry_id"),
        remote_file_id=r.get("remote_file_id"),
        last_error=r.get("last_error"),
        locked_at=r.get("locked_at"),
        locked_reason=r.get("locked_reason"),
        created_at=r.get("created_at"),
        deleted_at=r.get("deleted_at"),
    )


class MySQLUploadRepository(UploadRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, upload_id: int) -> Optional[Upload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE u.upload_id=%s", (upload_id,))
            r = fetchone(cur)
            return _to_upload(r) if r else None

    def get_by_client_request_id(self, client_request_id: str) -> Optional[Upload]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT + " WHERE u.client_request_id=%s", (client_request_id,))
            r = fetchone(cur)
            return _to_upload(r) if r else None

    def list_for_project(
        self,
        project_external_id: str,
        *,
        status: Optional[UploadStatus] = None,
        tag: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Sequence[Upload]:
        sql = _SELECT + " WHERE u.project_external_id=%s AND u.deleted_at IS NULL"
        params: list[Any] = [project_external_id]
        if status is not None:
            sql += " AND u.status=%s"
            params.append(status.value)
        if tag:
            sql += " AND JSON_CONTAINS(u.tags, JSON_QUOTE(%s))"
            params.append(tag)
        if search:
            sql += " AND (u.title LIKE %s OR u.remarks LIKE %s)"
            like = f"%{search}%"
            params.extend([like, like])
        sql += " ORDER BY u.created_at DESC, u.upload_id DESC"

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_upload(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        user_id: int,
        project_id: Optional[int],
        project_external_id: str,
        title: str,
        client_request_id: str,
        remarks: Optional[str],
        document_type: Optional[str],
        tags: Sequence[str],
        latitude: Optional[float],
        longitude: Optional[float],
        created_at: datetime,
    ) -> Upload:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO uploads(
                        user_id, project_id, project_external_id, title, client_request_id, status,
                        remarks, document_type, tags, latitude, longitude, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,'pending',%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        user_id,
                        project_id,
                        project_external_id,
                        title,
                        client_request_id,
                        remarks,
                        document_type,
                        json.dumps(list(tags)),
                        latitude,
                        longitude,
                        created_at,
                    ),
                )
                upload_id = int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            raise ConflictError(f"Upload with client_request_id {client_request_id!r} already exists") from e
        return self._require(upload_id)

    def update_metadata(
        self,
        upload_id: int,
        *,
        title: str,
        remarks: Optional[str],
        document_type: Optional[str],
        tags: Sequence[str],
    ) -> Upload:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE uploads SET title=%s, remarks=%s, document_type=%s, tags=%s WHERE upload_id=%s",
                (title, remarks, document_type, json.dumps(list(tags)), upload_id),
            )
        return self._require(upload_id)

    def update_file(
        self,
        upload_id: int,
        *,
        original_filename: str,
        mime_type: Optional[str],
        size_bytes: int,
        local_path: Optional[str],
    ) -> Upload:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE uploads
                SET original_filename=%s, mime_type=%s, size_bytes=%s, local_path=%s
                WHERE upload_id=%s
                """,
                (original_filename, mime_type, size_bytes, local_path, upload_id),
            )
        return self._require(upload_id)

    def set_status(self, upload_id: int, status: UploadStatus, *, last_error: Optional[str] = None) -> Upload:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE uploads SET status=%s, last_error=%s WHERE upload_id=%s",
                (status.value, last_error, upload_id),
            )
        return self._require(upload_id)

    def mark_uploaded(self, upload_id: int, *, entry_id: Optional[str], remote_file_id: str) -> Upload:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE uploads
                SET status='uploaded', entry_id=%s, remote_file_id=%s, last_error=NULL
                WHERE upload_id=%s
                """,
                (entry_id, remote_file_id, upload_id),
            )
        return self._require(upload_id)

    def lock(self, upload_id: int, *, locked_at: datetime, reason: str) -> Upload:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE uploads SET locked_at=%s, locked_reason=%s WHERE upload_id=%s AND locked_at IS NULL",
                (locked_at, reason, upload_id),
            )
        return self._require(upload_id)

    def soft_delete(self, upload_id: int, *, deleted_at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE uploads SET status='deleted', deleted_at=%s WHERE upload_id=%s",
                (deleted_at, upload_id),
            )

    def hard_delete(self, upload_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM uploads WHERE upload_id=%s", (upload_id,))

    def _require(self, upload_id: int) -> Upload:
        upload = self.get_by_id(upload_id)
        if upload is None:
            raise NotFoundError(f"Upload {upload_id} not found")
        return upload
