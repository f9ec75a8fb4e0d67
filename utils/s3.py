import asyncio
import logging
from typing import Dict, Iterable

from minio import Minio
from minio.deleteobjects import DeleteObject

from core.config import settings
from core.errors import ExternalUnavailable

logger = logging.getLogger(__name__)


def build_minio_client() -> Minio:
    endpoint = settings.AWS_S3_ENDPOINT_URL.replace("https://", "").replace("http://", "")
    return Minio(
        endpoint,
        access_key=settings.AWS_ACCESS_KEY_ID,
        secret_key=settings.AWS_SECRET_ACCESS_KEY,
        region=settings.AWS_S3_REGION,
        secure=settings.AWS_S3_ENDPOINT_URL.startswith("https://"),
    )


class S3MediaHost:
    """
    Хранилище фотографий анкет (MinIO/S3).

    Клиент minio синхронный, поэтому вызовы уходят в executor
    и ограничиваются таймаутом. Любая ошибка или таймаут превращается
    в ExternalUnavailable.
    """

    def __init__(self, client: Minio, bucket_name: str, timeout: float = 10.0):
        self.client = client
        self.bucket_name = bucket_name
        self.timeout = timeout

    def _remove_one(self, media_id: str) -> None:
        self.client.remove_object(self.bucket_name, media_id)

    def _remove_many(self, media_ids: list) -> Dict[str, bool]:
        results = {media_id: True for media_id in media_ids}
        # remove_objects ленивый: удаление происходит при итерации по ошибкам
        errors = self.client.remove_objects(
            self.bucket_name,
            [DeleteObject(media_id) for media_id in media_ids],
        )
        for error in errors:
            logger.warning("Failed to delete %s from S3: %s", error.name, error.message)
            results[error.name] = False
        return results

    async def delete(self, media_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
            await asyncio.wait_for(loop.run_in_executor(None, self._remove_one, media_id), self.timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalUnavailable(f"S3 delete timed out: {media_id}") from exc
        except Exception as exc:  # noqa: BLE001
            raise ExternalUnavailable(f"Ошибка при удалении из S3: {exc}") from exc

    async def delete_batch(self, media_ids: Iterable[str]) -> Dict[str, bool]:
        media_ids = list(media_ids)
        if not media_ids:
            return {}
        try:
            loop = asyncio.get_running_loop()
            return await asyncio.wait_for(loop.run_in_executor(None, self._remove_many, media_ids), self.timeout)
        except asyncio.TimeoutError as exc:
            raise ExternalUnavailable(f"S3 batch delete timed out ({len(media_ids)} objects)") from exc
        except Exception as exc:  # noqa: BLE001
            raise ExternalUnavailable(f"Ошибка при удалении из S3: {exc}") from exc


class UnconfiguredMediaHost:
    """Вариант без доступа к S3: каждое удаление честно сообщает о недоступности."""

    async def delete(self, media_id: str) -> None:
        raise ExternalUnavailable("Media host not configured")

    async def delete_batch(self, media_ids: Iterable[str]) -> Dict[str, bool]:
        media_ids = list(media_ids)
        if not media_ids:
            return {}
        raise ExternalUnavailable("Media host not configured")


def build_media_host():
    if not (settings.AWS_ACCESS_KEY_ID and settings.AWS_SECRET_ACCESS_KEY):
        logger.warning("S3 credentials not configured - photo deletion disabled")
        return UnconfiguredMediaHost()
    return S3MediaHost(
        build_minio_client(),
        settings.AWS_S3_BUCKET_NAME,
        timeout=settings.MEDIA_TIMEOUT_SECONDS,
    )
