from __future__ import annotations

import io
import json
import logging
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import google.auth
import httplib2
from google.auth.exceptions import DefaultCredentialsError, GoogleAuthError
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials as OAuthCredentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from hirelane.config import Settings, get_settings
from hirelane.core.errors import StorageConfigurationError, UpstreamFailureError
from hirelane.types import StoredDocument

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ["https://www.googleapis.com/auth/drive"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

_QUOTA_REASONS = {
    "quotaExceeded",
    "storageQuotaExceeded",
    "userRateLimitExceeded",
    "rateLimitExceeded",
    "dailyLimitExceeded",
}


@dataclass(slots=True)
class DriveCredentialsConfig:
    mode: str
    client_id: str = ""
    client_secret: str = ""
    refresh_token: str = ""
    token_uri: str = "https://oauth2.googleapis.com/token"
    service_account_json: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> DriveCredentialsConfig:
        return cls(
            mode=resolve_auth_mode(settings),
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            refresh_token=settings.google_refresh_token,
            token_uri=settings.google_token_uri,
            service_account_json=settings.google_service_account_json,
        )


@dataclass(slots=True)
class DriveStorageConfig:
    folder_id: str = ""
    folder_name: str = "hirelane-cvs"
    timeout_sec: int = 30
    mime_type: str = "application/octet-stream"

    @classmethod
    def from_settings(cls, settings: Settings) -> DriveStorageConfig:
        return cls(
            folder_id=settings.drive_folder_id,
            folder_name=settings.drive_folder_name,
            timeout_sec=settings.drive_timeout_sec,
            mime_type=settings.drive_upload_mime_type,
        )


def resolve_auth_mode(settings: Settings) -> str:
    """Pick the credential source.

    An explicit ``drive_auth_mode`` wins. In ``auto`` the first configured
    source is used, in the order refresh token, inline service account JSON,
    application default credentials.
    """
    if settings.drive_auth_mode != "auto":
        return settings.drive_auth_mode
    if settings.google_client_id and settings.google_client_secret and settings.google_refresh_token:
        return "oauth_refresh_token"
    if settings.google_service_account_json.strip():
        return "service_account_json"
    return "application_default"


def build_credentials(config: DriveCredentialsConfig) -> Any:
    if config.mode == "oauth_refresh_token":
        missing = [
            name
            for name, value in (
                ("google_client_id", config.client_id),
                ("google_client_secret", config.client_secret),
                ("google_refresh_token", config.refresh_token),
            )
            if not value
        ]
        if missing:
            raise StorageConfigurationError(f"oauth_refresh_token mode requires {', '.join(missing)}")
        return OAuthCredentials(
            token=None,
            refresh_token=config.refresh_token,
            client_id=config.client_id,
            client_secret=config.client_secret,
            token_uri=config.token_uri,
            scopes=DRIVE_SCOPES,
        )

    if config.mode == "service_account_json":
        try:
            info = json.loads(config.service_account_json)
        except json.JSONDecodeError as exc:
            raise StorageConfigurationError(
                f"google_service_account_json is not valid JSON (all keys must be double-quoted): {exc}"
            ) from exc
        try:
            return service_account.Credentials.from_service_account_info(info, scopes=DRIVE_SCOPES)
        except (ValueError, KeyError) as exc:
            raise StorageConfigurationError(f"invalid service account info: {exc}") from exc

    if config.mode == "application_default":
        try:
            credentials, _project = google.auth.default(scopes=DRIVE_SCOPES)
        except DefaultCredentialsError as exc:
            raise StorageConfigurationError(str(exc)) from exc
        return credentials

    raise StorageConfigurationError(f"unsupported drive auth mode {config.mode!r}")


def classify_error(exc: Exception) -> UpstreamFailureError:
    if isinstance(exc, UpstreamFailureError):
        return exc

    if isinstance(exc, HttpError):
        status_code = int(exc.resp.status)
        message = (getattr(exc, "reason", "") or str(exc)).strip()
        reasons = _error_reasons(exc)
        if status_code == 404:
            kind = "not_found"
        elif status_code == 401:
            kind = "auth"
        elif status_code == 429 or reasons & _QUOTA_REASONS:
            kind = "quota"
        elif status_code == 403:
            kind = "permission"
        else:
            kind = "provider"
        return UpstreamFailureError(message, kind=kind, status_code=status_code)

    if isinstance(exc, GoogleAuthError):
        return UpstreamFailureError(str(exc), kind="auth")
    if isinstance(exc, (httplib2.HttpLib2Error, OSError)):
        return UpstreamFailureError(str(exc) or exc.__class__.__name__, kind="network")
    return UpstreamFailureError(str(exc) or exc.__class__.__name__, kind="provider")


def _error_reasons(exc: HttpError) -> set[str]:
    details = getattr(exc, "error_details", None)
    if not isinstance(details, list):
        return set()
    return {item["reason"] for item in details if isinstance(item, dict) and item.get("reason")}


def _escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveStorage:
    """CV document storage backed by Google Drive.

    No call is retried here; failures are either raised as
    ``UpstreamFailureError`` (upload) or reported through the return value
    (download URL resolution, delete) so callers decide what to do.
    """

    def __init__(
        self,
        config: DriveStorageConfig,
        *,
        credentials_config: DriveCredentialsConfig | None = None,
        service: Any | None = None,
    ):
        self.config = config
        self.credentials_config = credentials_config
        self._service = service
        self._folder_id: str | None = config.folder_id or None
        self._folder_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> GoogleDriveStorage:
        credentials_config = DriveCredentialsConfig.from_settings(settings)
        logger.info("Drive storage configured auth_mode=%s", credentials_config.mode)
        return cls(DriveStorageConfig.from_settings(settings), credentials_config=credentials_config)

    @property
    def service(self) -> Any:
        if self._service is None:
            if self.credentials_config is None:
                raise StorageConfigurationError("Drive storage has neither a service nor credentials")
            credentials = build_credentials(self.credentials_config)
            http = AuthorizedHttp(credentials, http=httplib2.Http(timeout=self.config.timeout_sec))
            self._service = build("drive", "v3", http=http, cache_discovery=False)
        return self._service

    def resolve_folder_id(self) -> str:
        if self._folder_id:
            return self._folder_id

        with self._folder_lock:
            if self._folder_id:
                return self._folder_id

            name = self.config.folder_name
            query = (
                f"mimeType='{FOLDER_MIME_TYPE}' and name='{_escape_query_value(name)}' and trashed=false"
            )
            found = (
                self.service.files()
                .list(
                    q=query,
                    spaces="drive",
                    fields="files(id, name)",
                    pageSize=1,
                    supportsAllDrives=True,
                    includeItemsFromAllDrives=True,
                )
                .execute()
            )
            files = found.get("files") or []
            if files:
                self._folder_id = files[0]["id"]
                logger.info("Using existing Drive folder name=%s id=%s", name, self._folder_id)
            else:
                created = (
                    self.service.files()
                    .create(body={"name": name, "mimeType": FOLDER_MIME_TYPE}, fields="id", supportsAllDrives=True)
                    .execute()
                )
                self._folder_id = created["id"]
                logger.info("Created Drive folder name=%s id=%s", name, self._folder_id)
            return self._folder_id

    def upload(self, data: bytes, filename: str, *, mime_type: str | None = None) -> StoredDocument:
        try:
            folder_id = self.resolve_folder_id()
            media = MediaIoBaseUpload(
                io.BytesIO(data),
                mimetype=mime_type or self.config.mime_type,
                resumable=False,
            )
            created = (
                self.service.files()
                .create(
                    body={"name": filename, "parents": [folder_id]},
                    media_body=media,
                    fields="id, webViewLink, webContentLink",
                    supportsAllDrives=True,
                )
                .execute()
            )
        except StorageConfigurationError:
            raise
        except Exception as exc:
            failure = classify_error(exc)
            logger.error("Drive upload failed filename=%s kind=%s: %s", filename, failure.kind, failure.message)
            raise failure from exc

        file_id = created.get("id")
        if not file_id:
            raise UpstreamFailureError("Drive did not return a file id for the upload", kind="provider")

        try:
            self.service.permissions().create(
                fileId=file_id,
                body={"role": "reader", "type": "anyone"},
                supportsAllDrives=True,
            ).execute()
        except Exception as exc:
            failure = classify_error(exc)
            logger.error(
                "Drive permission grant failed provider_id=%s kind=%s: %s", file_id, failure.kind, failure.message
            )
            if not self.delete(file_id):
                failure.orphaned_provider_id = file_id
            raise failure from exc

        url = created.get("webContentLink") or created.get("webViewLink") or (
            f"https://drive.google.com/uc?id={file_id}&export=download"
        )
        logger.info("Uploaded %s to Drive provider_id=%s", filename, file_id)
        return StoredDocument(provider_id=file_id, url=url, filename=filename)

    def resolve_download_url(self, provider_id: str) -> str | None:
        if not provider_id:
            return None
        try:
            meta = (
                self.service.files()
                .get(fileId=provider_id, fields="webContentLink, webViewLink", supportsAllDrives=True)
                .execute()
            )
        except Exception as exc:
            failure = classify_error(exc)
            logger.warning(
                "Drive download URL unavailable provider_id=%s kind=%s: %s",
                provider_id,
                failure.kind,
                failure.message,
            )
            return None
        return meta.get("webContentLink") or meta.get("webViewLink") or None

    def delete(self, provider_id: str) -> bool:
        if not provider_id:
            return True
        try:
            self.service.files().delete(fileId=provider_id, supportsAllDrives=True).execute()
        except Exception as exc:
            failure = classify_error(exc)
            if failure.kind == "not_found":
                logger.info("Drive file already absent provider_id=%s", provider_id)
                return True
            logger.error("Drive delete failed provider_id=%s kind=%s: %s", provider_id, failure.kind, failure.message)
            return False
        logger.info("Deleted Drive file provider_id=%s", provider_id)
        return True


@lru_cache(maxsize=1)
def get_document_storage() -> GoogleDriveStorage:
    return GoogleDriveStorage.from_settings(get_settings())
