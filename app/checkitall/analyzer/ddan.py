"""Deep Discovery Analyzer (DDAN) web service client.

Implements the Analyzer interface over the DDAN sample-upload web
service. Every request carries the DTAS header set; the checksum header
is the SHA-1 of the API key, the signed header values and the body.
"""

import hashlib
import json
import logging
import socket
import time
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import Any, BinaryIO

import requests

from checkitall.analyzer.base import AlreadyRegisteredError, Analyzer, AnalyzerError
from checkitall.analyzer.models import RiskLevel, SampleStatus, Verdict
from checkitall.core.config import AnalyzerSettings
from checkitall.filesystem.fingerprint import CHUNK_SIZE

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "1.5"

_REGISTER_PATH = "/web_service/sample_upload/register"
_CHECK_DUPLICATE_PATH = "/web_service/sample_upload/check_duplicate_sample"
_UPLOAD_PATH = "/web_service/sample_upload/simple_upload_sample"
_BRIEF_REPORT_PATH = "/web_service/sample_upload/get_brief_report"

# Headers covered by the checksum, in signing order
_SIGNED_HEADERS: tuple[str, ...] = (
    "X-DTAS-ProtocolVersion",
    "X-DTAS-ClientUUID",
    "X-DTAS-Time",
    "X-DTAS-Challenge",
    "X-DTAS-ProductName",
    "X-DTAS-ClientHostname",
    "X-DTAS-SourceID",
    "X-DTAS-SourceName",
    "X-DTAS-SHA1",
    "X-DTAS-SHA1List",
    "X-DTAS-SampleType",
    "X-DTAS-LastQueryID",
)

_WIRE_STATUSES: dict[int, SampleStatus] = {
    0: SampleStatus.NOT_FOUND,
    1: SampleStatus.ARRIVED,
    2: SampleStatus.PROCESSING,
    3: SampleStatus.DONE,
    4: SampleStatus.ERROR,
    5: SampleStatus.TIMEOUT,
}

_WIRE_RISK_LEVELS: dict[int, RiskLevel] = {
    -1: RiskLevel.UNSUPPORTED,
    0: RiskLevel.NO_RISK_FOUND,
    1: RiskLevel.LOW_RISK,
    2: RiskLevel.MEDIUM_RISK,
    3: RiskLevel.HIGH_RISK,
}


def parse_verdict(report: dict[str, Any]) -> Verdict:
    """Convert one brief-report entry into a Verdict.

    Args:
        report: Entry with ``SHA1``, ``STATUS`` and ``RISK_LEVEL`` keys.

    Returns:
        Verdict. Unknown risk levels are kept as raw integers.

    Raises:
        AnalyzerError: If the entry is malformed or the status unknown.
    """
    try:
        sha1 = str(report["SHA1"])
        wire_status = int(report["STATUS"])
    except (KeyError, TypeError, ValueError) as e:
        raise AnalyzerError(f"Malformed brief report entry: {report!r}") from e

    status = _WIRE_STATUSES.get(wire_status)
    if status is None:
        raise AnalyzerError(f"Unexpected status value {wire_status} for {sha1}")

    if status != SampleStatus.DONE:
        return Verdict(sha1=sha1, status=status)

    try:
        wire_risk = int(report["RISK_LEVEL"])
    except (KeyError, TypeError, ValueError) as e:
        raise AnalyzerError(f"Missing risk level for {sha1}: {report!r}") from e

    risk_level: RiskLevel | int = _WIRE_RISK_LEVELS.get(wire_risk, wire_risk)
    return Verdict(sha1=sha1, status=status, risk_level=risk_level)


def _multipart_body(
    field: str, filename: str, stream: BinaryIO, boundary: str
) -> Iterator[bytes]:
    """Yield a single-file multipart/form-data body, reading the file in chunks.

    requests sends a generator body with chunked transfer encoding, so
    the sample is never held in memory as a whole.
    """
    yield (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="{field}"; filename="{filename}"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).encode()
    while chunk := stream.read(CHUNK_SIZE):
        yield chunk
    yield f"\r\n--{boundary}--\r\n".encode()


class DDANClient(Analyzer):
    """Direct (uncached) client for the DDAN web service.

    A single requests.Session is shared by all workers; each call
    builds its own headers, so no per-call state lives on the client.

    Args:
        settings: Analyzer connection settings.
        client_uuid: Client UUID to identify as.
        session: Optional session (mainly for tests).
    """

    def __init__(
        self,
        settings: AnalyzerSettings,
        client_uuid: str,
        session: requests.Session | None = None,
    ) -> None:
        if not settings.url:
            msg = "Analyzer URL is not configured"
            raise AnalyzerError(msg)
        self._settings = settings
        self._base_url = settings.url.rstrip("/")
        self._client_uuid = client_uuid
        self._hostname = socket.gethostname()
        self._session = session or requests.Session()
        self._session.verify = not settings.ignore_tls_errors

    def register(self) -> None:
        body = json.dumps(
            {
                "ProductName": self._settings.product_name,
                "ClientHostname": self._hostname,
                "ClientUUID": self._client_uuid,
                "SourceID": self._settings.source_id,
                "SourceName": self._settings.source_name,
            }
        ).encode()
        response = self._put(_REGISTER_PATH, body=body, allowed=(409,))
        if response.status_code == 409:
            msg = f"Client {self._client_uuid} is already registered"
            raise AlreadyRegisteredError(msg)

    def check_duplicate(self, sha1s: list[str]) -> list[str]:
        headers = {"X-DTAS-SHA1List": ";".join(sha1s), "X-DTAS-LastQueryID": "0"}
        response = self._put(_CHECK_DUPLICATE_PATH, headers=headers)
        text = response.text.strip()
        if not text:
            return []
        try:
            known = json.loads(text)
        except ValueError:
            known = [s for s in text.split(";") if s]
        if not isinstance(known, list):
            raise AnalyzerError(f"Unexpected duplicate check response: {text!r}")
        return [str(s) for s in known]

    def upload(self, path: str, sha1: str) -> None:
        headers = {
            "X-DTAS-SHA1": sha1,
            "X-DTAS-SampleType": "0",
            "X-DTAS-SourceID": self._settings.source_id,
            "X-DTAS-SourceName": self._settings.source_name,
        }
        try:
            with open(path, "rb") as sample:
                self._put(_UPLOAD_PATH, headers=headers, sample=(Path(path).name, sample))
        except OSError as e:
            raise AnalyzerError(f"Upload {path}: {e}") from e
        logger.debug("Uploaded %s (%s)", path, sha1)

    def get_verdict(self, sha1s: list[str]) -> list[Verdict]:
        body = json.dumps({"SHA1List": sha1s}).encode()
        response = self._put(_BRIEF_REPORT_PATH, body=body)
        try:
            data = response.json()
            reports = data["REPORTS"]
        except (ValueError, KeyError, TypeError) as e:
            raise AnalyzerError(f"Malformed brief report response: {response.text!r}") from e
        return [parse_verdict(report) for report in reports]

    # === Private helpers ===

    def _headers(self, extra: dict[str, str], body: bytes) -> dict[str, str]:
        headers = {
            "X-DTAS-ProtocolVersion": PROTOCOL_VERSION,
            "X-DTAS-ClientUUID": self._client_uuid,
            "X-DTAS-Time": str(int(time.time())),
            "X-DTAS-Challenge": str(uuid.uuid4()),
            "X-DTAS-ProductName": self._settings.product_name,
            "X-DTAS-ClientHostname": self._hostname,
            **extra,
        }
        headers["X-DTAS-Checksum"] = self.checksum(headers, body)
        return headers

    def checksum(self, headers: dict[str, str], body: bytes | BinaryIO) -> str:
        """Compute the DTAS checksum over the API key, signed headers and body.

        A file body is hashed in chunks and rewound afterwards.
        """
        digest = hashlib.sha1(usedforsecurity=False)
        digest.update(self._settings.api_key.encode())
        for name in _SIGNED_HEADERS:
            if name in headers:
                digest.update(headers[name].encode())
        if isinstance(body, bytes):
            digest.update(body)
        else:
            start = body.tell()
            while chunk := body.read(CHUNK_SIZE):
                digest.update(chunk)
            body.seek(start)
        return digest.hexdigest()

    def _put(
        self,
        path: str,
        *,
        headers: dict[str, str] | None = None,
        body: bytes = b"",
        sample: tuple[str, BinaryIO] | None = None,
        allowed: tuple[int, ...] = (),
    ) -> requests.Response:
        url = self._base_url + path
        data: bytes | Iterator[bytes] = body
        if sample is None:
            request_headers = self._headers(headers or {}, body)
        else:
            # Uploads sign the sample content rather than the multipart body
            name, stream = sample
            request_headers = self._headers(headers or {}, stream)
            boundary = uuid.uuid4().hex
            request_headers["Content-Type"] = f"multipart/form-data; boundary={boundary}"
            data = _multipart_body("uploadsample", name, stream, boundary)
        try:
            response = self._session.put(
                url,
                headers=request_headers,
                data=data,
                timeout=self._settings.request_timeout,
            )
        except requests.RequestException as e:
            raise AnalyzerError(f"PUT {path}: {e}") from e

        if response.status_code in allowed:
            return response
        if not response.ok:
            msg = f"PUT {path}: HTTP {response.status_code}: {response.text.strip()[:200]}"
            raise AnalyzerError(msg)
        return response
