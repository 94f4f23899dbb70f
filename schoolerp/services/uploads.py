"""Upload storage: local disk or AWS S3. Callers only receive a URL path."""
import asyncio
import logging
import uuid
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import UploadFile

from schoolerp.config import settings
from schoolerp.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

_s3 = None

ALLOWED_EXTENSIONS = {
    "documents": {"pdf", "jpg", "jpeg", "png", "doc", "docx"},
    "profiles": {"jpg", "jpeg", "png", "webp"},
    "materials": {"pdf", "doc", "docx", "ppt", "pptx", "xls", "xlsx", "zip", "jpg", "jpeg", "png", "mp4"},
}


def get_s3():
    global _s3
    if _s3 is None:
        _s3 = boto3.client(
            "s3",
            region_name=settings.aws_region,
            aws_access_key_id=settings.aws_access_key_id or None,
            aws_secret_access_key=settings.aws_secret_access_key or None,
        )
    return _s3


def _extension(filename: str | None) -> str:
    name = filename or ""
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def _write_local(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _upload_s3_sync(key: str, content: bytes, content_type: str) -> None:
    get_s3().put_object(
        Bucket=settings.s3_bucket_uploads,
        Key=key,
        Body=content,
        ContentType=content_type,
    )


async def store_upload(file: UploadFile, *, category: str, school_id: str) -> str:
    """Persist an uploaded file; return the URL clients should store on records."""
    ext = _extension(file.filename)
    allowed = ALLOWED_EXTENSIONS.get(category, set())
    if ext not in allowed:
        raise ValidationError(f"file: unsupported file type '.{ext}'" if ext else "file: missing file extension")
    content = await file.read()
    if not content:
        raise ValidationError("file: uploaded file is empty")
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise ValidationError(f"file: exceeds {settings.max_upload_mb} MB limit")

    name = f"{uuid.uuid4().hex}.{ext}"
    key = f"{category}/{school_id}/{name}"
    if settings.upload_backend == "s3":
        try:
            await asyncio.to_thread(_upload_s3_sync, key, content, file.content_type or "application/octet-stream")
        except (BotoCoreError, ClientError) as e:
            logger.warning("S3 upload failed for %s: %s", key, e)
            raise InternalError()
        return f"https://{settings.s3_bucket_uploads}.s3.{settings.aws_region}.amazonaws.com/{key}"

    await asyncio.to_thread(_write_local, Path(settings.upload_dir) / key, content)
    return f"{settings.upload_url_prefix.rstrip('/')}/{key}"
