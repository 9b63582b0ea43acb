# app/services/storage.py
"""
Gateway de almacenamiento de objetos (Supabase Storage, API REST).

Interfaz usada por los servicios de dominio:
    upload(bucket, path, content, content_type) -> path
    get_public_url(bucket, path) -> url
    create_signed_url(bucket, path, expires_in) -> url
    list_objects(bucket, prefix) -> [path, ...]   (recursivo)
    remove_objects(bucket, paths) -> None

Sin SUPABASE_URL o sin service key todas las operaciones fallan con
StorageNotConfiguredError en lugar de tumbar el proceso.
"""

from typing import List, Optional
from urllib.parse import quote, unquote

import httpx

from app.core.config import Settings
from app.core.exceptions import StorageError, StorageNotConfiguredError
from app.core.logging_config import logger

PUBLIC_PREFIX = "/storage/v1/object/public"
LIST_PAGE_SIZE = 1000


def public_url_marker(bucket: str) -> str:
    return f"{PUBLIC_PREFIX}/{bucket}/"


def path_from_public_url(url: str, bucket: str) -> str:
    """Recupera el path del objeto a partir de la URL pública guardada.

    Si la URL no contiene el prefijo público se asume que ya es un path.
    La URL pública va codificada (ver get_public_url); el path no.
    """
    parts = url.split(public_url_marker(bucket), 1)
    return unquote(parts[1]) if len(parts) > 1 else url


class SupabaseStorage:
    def __init__(
        self,
        base_url: Optional[str],
        service_key: Optional[str],
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self._client: Optional[httpx.Client] = None

        if not self.base_url or not service_key:
            logger.warning("[Storage] SUPABASE_URL o SUPABASE_SERVICE_ROLE_KEY no configurados")
            return

        self._client = httpx.Client(
            base_url=f"{self.base_url}/storage/v1",
            headers={"Authorization": f"Bearer {service_key}", "apikey": service_key},
            timeout=timeout,
            transport=transport,
        )
        logger.info("[Storage] Inicializado correctamente")

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseStorage":
        return cls(settings.supabase_url, settings.supabase_service_key, timeout=settings.storage_timeout)

    def is_configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> httpx.Client:
        if self._client is None:
            raise StorageNotConfiguredError()
        return self._client

    @staticmethod
    def _object_path(bucket: str, path: str) -> str:
        return f"{quote(bucket)}/{quote(path)}"

    # -------------------------
    # Operaciones
    # -------------------------
    def upload(self, bucket: str, path: str, content: bytes, content_type: str) -> str:
        client = self._require_client()
        try:
            r = client.post(
                f"/object/{self._object_path(bucket, path)}",
                content=content,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[Storage] Error subiendo {bucket}/{path}: {e}")
            raise StorageError(f"Error al subir archivo: {e}") from e

        logger.info(f"[Storage] Subido {bucket}/{path} ({len(content)} bytes)")
        return path

    def get_public_url(self, bucket: str, path: str) -> str:
        self._require_client()
        return f"{self.base_url}{public_url_marker(bucket)}{quote(path)}"

    def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        client = self._require_client()
        try:
            r = client.post(f"/object/sign/{self._object_path(bucket, path)}", json={"expiresIn": expires_in})
            r.raise_for_status()
            signed = r.json().get("signedURL")
        except (httpx.HTTPError, ValueError) as e:
            raise StorageError(f"Error al generar URL: {e}") from e

        if not signed:
            raise StorageError("Error al generar URL: respuesta sin signedURL")
        return f"{self.base_url}/storage/v1{signed}"

    def list_objects(self, bucket: str, prefix: str) -> List[str]:
        """Lista recursivamente todos los objetos bajo `prefix` (paths completos)."""
        client = self._require_client()
        prefix = prefix.strip("/")
        out: List[str] = []
        pending = [prefix]

        while pending:
            folder = pending.pop()
            offset = 0
            while True:
                try:
                    r = client.post(
                        f"/object/list/{quote(bucket)}",
                        json={
                            "prefix": folder,
                            "limit": LIST_PAGE_SIZE,
                            "offset": offset,
                            "sortBy": {"column": "name", "order": "asc"},
                        },
                    )
                    r.raise_for_status()
                    entries = r.json() or []
                except (httpx.HTTPError, ValueError) as e:
                    raise StorageError(f"Error al listar archivos: {e}") from e

                for entry in entries:
                    full = f"{folder}/{entry['name']}" if folder else entry["name"]
                    # Las carpetas vienen sin id
                    if entry.get("id") is None:
                        pending.append(full)
                    else:
                        out.append(full)

                if len(entries) < LIST_PAGE_SIZE:
                    break
                offset += LIST_PAGE_SIZE

        return sorted(out)

    def remove_objects(self, bucket: str, paths: List[str]) -> None:
        client = self._require_client()
        if not paths:
            return
        try:
            r = client.request("DELETE", f"/object/{quote(bucket)}", json={"prefixes": list(paths)})
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"[Storage] Error eliminando {len(paths)} archivo(s) de {bucket}: {e}")
            raise StorageError(f"Error al eliminar archivo: {e}") from e

        logger.info(f"[Storage] Eliminados {len(paths)} archivo(s) de {bucket}")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
