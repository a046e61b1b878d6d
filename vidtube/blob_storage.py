# blob_storage.py
import logging
import os
import shutil
import uuid
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient
from fastapi import UploadFile
from starlette.concurrency import run_in_threadpool

from vidtube.config import AZURE_STORAGE_CONNECTION_STRING, AZURE_BLOB_CONTAINER_NAME, UPLOAD_TEMP_DIR
from vidtube.errors import InternalError

logger = logging.getLogger(__name__)

def get_blob_service_client() -> BlobServiceClient:
    return BlobServiceClient.from_connection_string(AZURE_STORAGE_CONNECTION_STRING)

def has_upload(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)

def _copy_to_disk(source, local_path: str) -> None:
    try:
        with open(local_path, "wb") as out:
            shutil.copyfileobj(source, out)
    except Exception:
        if os.path.exists(local_path):
            os.remove(local_path)
        raise

async def stage_upload(file: UploadFile, temp_dir: Optional[str] = None) -> str:
    """Write an incoming multipart file to local temp storage and return its path."""
    temp_dir = temp_dir or UPLOAD_TEMP_DIR
    os.makedirs(temp_dir, exist_ok=True)
    file_extension = os.path.splitext(file.filename or "")[1]
    local_path = os.path.join(temp_dir, f"{uuid.uuid4()}{file_extension}")
    await file.seek(0)
    await run_in_threadpool(_copy_to_disk, file.file, local_path)
    return local_path

async def upload_local_file(local_path: str, file_type: str, content_type: Optional[str] = None) -> str:
    """Push a staged file to Azure Blob Storage; the local copy is removed either way."""
    blob_name = f"{file_type}/{uuid.uuid4()}{os.path.splitext(local_path)[1]}"
    try:
        async with get_blob_service_client() as service:
            container_client = service.get_container_client(AZURE_BLOB_CONTAINER_NAME)
            if not await container_client.exists():
                await container_client.create_container()
            blob_client = container_client.get_blob_client(blob_name)
            with open(local_path, "rb") as data:
                await blob_client.upload_blob(
                    data,
                    overwrite=True,
                    content_settings=ContentSettings(content_type=content_type) if content_type else None,
                )
            logger.info("Uploaded %s to blob storage", blob_name)
            return blob_client.url
    finally:
        if os.path.exists(local_path):
            os.remove(local_path)

async def upload_file_to_blob(file: UploadFile, file_type: str) -> str:
    """Stage and upload a file, returning its URL. Any failure is an InternalError."""
    try:
        local_path = await stage_upload(file)
        return await upload_local_file(local_path, file_type, content_type=file.content_type)
    except Exception as e:
        logger.error("Upload of %s failed: %s", file_type, e)
        raise InternalError(f"Failed to upload {file_type} file")

def split_blob_url(blob_url: str) -> Tuple[str, str]:
    """https://acct.blob.core.windows.net/<container>/<folder>/<name> -> (container, blob name)"""
    path = unquote(urlparse(blob_url).path).lstrip("/")
    container_name, _, blob_name = path.partition("/")
    if not container_name or not blob_name:
        raise ValueError(f"Not a blob URL: {blob_url}")
    return container_name, blob_name

async def delete_blob(blob_url: Optional[str]) -> bool:
    """Best-effort delete; failures are logged and never raised."""
    if not blob_url:
        return False
    try:
        container_name, blob_name = split_blob_url(blob_url)
        async with get_blob_service_client() as service:
            blob_client = service.get_blob_client(container=container_name, blob=blob_name)
            await blob_client.delete_blob()
        logger.info("Deleted blob %s", blob_name)
        return True
    except Exception as e:
        logger.warning("Could not delete blob %s: %s", blob_url, e)
        return False

async def discard_blobs(*blob_urls: Optional[str]) -> None:
    """Remove blobs uploaded for a record that was never stored."""
    for blob_url in blob_urls:
        await delete_blob(blob_url)
