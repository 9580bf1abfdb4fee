"""
Paperless-ngx API client for paperless-site-uploader.

This module handles all interactions with the Paperless-ngx API:
connection testing, site tag lookup and single document posts. Retries
are left to the caller.
"""

import logging
from typing import Optional, Tuple

import requests
from urllib3 import encode_multipart_formdata

from config import Config


logger = logging.getLogger(__name__)

DOCUMENT_CONTENT_TYPE = 'application/octet-stream'


class PaperlessError(Exception):
    """Base error for failed Paperless-ngx API calls."""


class UploadError(PaperlessError):
    """The document endpoint rejected the upload or sent back garbage."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def build_multipart_body(file_name: str, content: bytes, tag_id: Optional[int] = None) -> Tuple[bytes, str]:
    """
    Encode a document and optional tag as a multipart/form-data body.

    A new random boundary is chosen on every call. The file content is
    written into the body as raw bytes.

    Args:
        file_name: Original file name, sent as the part's filename
        content: Raw file content
        tag_id: Site tag identifier; the ``tags`` part is omitted when None

    Returns:
        Tuple of (body bytes, Content-Type header value)
    """
    fields = [('document', (file_name, content, DOCUMENT_CONTENT_TYPE))]
    if tag_id is not None:
        fields.append(('tags', str(tag_id)))
    return encode_multipart_formdata(fields)


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class PaperlessClient:
    """Client for interacting with Paperless-ngx API."""

    def __init__(self, config: Config):
        """Initialize the Paperless client."""
        self.config = config
        self.logger = logging.getLogger(__name__)

    def test_connection(self) -> bool:
        """
        Test connection to Paperless-ngx API.

        Logs on failure but does not raise exceptions; the result is
        advisory and callers continue either way.

        Returns:
            True if the API answered with a 2xx status, False otherwise
        """
        try:
            self.logger.info("Testing connection to Paperless-ngx...")

            response = requests.get(
                f"{self.config.paperless_api_url}/",
                headers=self.config.get_headers(),
                timeout=self.config.api_test_timeout
            )

            if _is_success(response.status_code):
                self.logger.info(f"Successfully connected to Paperless-ngx API (status: {response.status_code})")
                return True

            self.logger.error(f"Paperless-ngx API returned status {response.status_code}")
            self.logger.warning("Continuing anyway, but uploads may fail")
            return False

        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to connect to Paperless-ngx: {e}")
            self.logger.warning("Continuing anyway, but uploads will likely fail")
            return False

    def resolve_tag(self, name: str) -> Optional[int]:
        """
        Look up the numeric id of a tag by case-insensitive exact name.

        Args:
            name: Tag name, usually the configured site name

        Returns:
            The id of the first matching tag, or None if the name is empty,
            no tag matches, or the lookup fails
        """
        if not name:
            self.logger.info("No site name configured, documents will be uploaded without a tag")
            return None

        try:
            response = requests.get(
                self.config.paperless_tags_url,
                params={'name__iexact': name},
                headers=self.config.get_headers(),
                timeout=self.config.api_test_timeout
            )
            if not _is_success(response.status_code):
                self.logger.error(f"Tag lookup for '{name}' failed with status {response.status_code}")
                return None

            payload = response.json()
            results = payload.get('results') or []
            if payload.get('count', len(results)) == 0 or not results:
                self.logger.warning(f"Tag '{name}' not found in Paperless-ngx - create it first")
                return None

            tag_id = int(results[0]['id'])
            self.logger.info(f"Resolved site tag '{name}' to id {tag_id}")
            return tag_id

        except requests.exceptions.RequestException as e:
            self.logger.error(f"Failed to look up tag '{name}': {e}")
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            self.logger.error(f"Unexpected tag lookup response for '{name}': {e}")
        return None

    def post_document(self, file_name: str, content: bytes, tag_id: Optional[int] = None) -> str:
        """
        Send a single upload request to the document intake endpoint.

        Args:
            file_name: Original file name
            content: Raw file content
            tag_id: Optional site tag identifier

        Returns:
            The task or document reference returned by Paperless-ngx

        Raises:
            UploadError: Non-2xx status or unparseable response body
            requests.exceptions.RequestException: Transport failure or timeout
        """
        body, content_type = build_multipart_body(file_name, content, tag_id)
        headers = self.config.get_headers()
        headers['Content-Type'] = content_type

        response = requests.post(
            self.config.paperless_upload_url,
            data=body,
            headers=headers,
            timeout=self.config.upload_timeout
        )

        if not _is_success(response.status_code):
            raise UploadError(
                f"Upload rejected with status {response.status_code}: {response.text[:500]}",
                status_code=response.status_code
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise UploadError(f"Could not parse upload response: {e}", status_code=response.status_code)

        if isinstance(payload, dict):
            reference = payload.get('task_id', payload.get('id'))
        else:
            reference = payload
        if reference is None or reference == '':
            raise UploadError(f"Upload response carries no reference: {payload!r}", status_code=response.status_code)
        return str(reference)
