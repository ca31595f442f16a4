"""Resolve construction year and street for cadastral references."""

from __future__ import annotations

import http.client
import json
from typing import Any, Dict, Mapping, Optional, Sequence
from urllib import error as urllib_error
from urllib import parse as urllib_parse
from urllib import request as urllib_request

from ..config import CATASTRO_CONFIG, CatastroConfig
from ..core import (
    EnrichmentRecord,
    LogSink,
    MultipleProperties,
    QueryFailure,
    RemoteQueryResult,
    SingleProperty,
)
from ..core.exceptions import HttpStatusFailure, LookupFailure, MalformedJson, TransportFailure
from ..core.models import ERROR_PREFIX
from ..utils import parse_year, street_from_text_line


class _HTTPClient:
    """Small wrapper around :func:`urllib.request.urlopen` with headers."""

    def __init__(self, user_agent: str = CATASTRO_CONFIG.user_agent):
        self.headers = {"User-Agent": user_agent}

    def get_json(self, url: str, params: Dict[str, object], timeout: int) -> Any:
        query = urllib_parse.urlencode(params)
        request = urllib_request.Request(f"{url}?{query}", headers=self.headers)
        try:
            with urllib_request.urlopen(request, timeout=timeout) as response:
                status = response.status
                data = response.read()
        except urllib_error.HTTPError as exc:
            raise HttpStatusFailure(exc.code, details={"url": url}) from exc
        except (urllib_error.URLError, http.client.HTTPException, OSError) as exc:
            reason = getattr(exc, "reason", None) or exc
            raise TransportFailure(str(reason), details={"url": url}) from exc

        if not 200 <= status < 300:
            raise HttpStatusFailure(status, details={"url": url})

        try:
            return json.loads(data.decode("utf-8"))
        except ValueError as exc:
            raise MalformedJson("malformed JSON body", details={"url": url}) from exc


def _dig(node: Any, path: Sequence[str]) -> Any:
    for key in path:
        if not isinstance(node, Mapping):
            return None
        node = node.get(key)
    return node


class CatastroEnricher:
    """Query the cadastre ``Consulta_DNPRC`` service one reference at a time.

    :meth:`resolve` never raises: every failure degrades to a record whose
    address starts with ``"Error: "`` so callers can move on to the next row.
    """

    def __init__(
        self,
        http_client: Optional[_HTTPClient] = None,
        *,
        config: CatastroConfig = CATASTRO_CONFIG,
        sink: Optional[LogSink] = None,
    ):
        self.config = config
        self.layout = config.layout
        self.http_client = http_client or _HTTPClient(config.user_agent)
        self.sink = sink or LogSink()

    def resolve(self, code: str) -> EnrichmentRecord:
        return self.reduce(self.query(code), code)

    def query(self, code: str) -> RemoteQueryResult:
        self.sink.info("Querying %s", code)
        params = {self.config.query_param: code}
        try:
            payload = self.http_client.get_json(self.config.endpoint, params, self.config.timeout)
        except LookupFailure as exc:
            kind = type(exc).__name__
            self.sink.error("Lookup for %s failed (%s): %s", code, kind, exc)
            return QueryFailure(kind=kind, reason=str(exc))
        return self.classify(payload)

    def classify(self, payload: Any) -> RemoteQueryResult:
        """Decide once whether a response holds one property or several."""

        result = _dig(payload, (self.layout.result_key,))
        records = _dig(result, self.layout.multiple_path)
        if isinstance(records, Mapping):
            records = [records]
        if isinstance(records, list):
            return MultipleProperties(nodes=tuple(r for r in records if isinstance(r, Mapping)))

        node = _dig(result, self.layout.single_path)
        return SingleProperty(node=node if isinstance(node, Mapping) else {})

    def reduce(self, result: RemoteQueryResult, code: str = "") -> EnrichmentRecord:
        if isinstance(result, QueryFailure):
            return EnrichmentRecord(year=0, address=f"{ERROR_PREFIX}{result.reason}")

        if isinstance(result, SingleProperty):
            record = self.extract(result.node)
            self.sink.info("Single reference %s - year: %d - address: %s", code, record.year, record.address)
            return record

        self.sink.info("Reference %s has %d sub-references", code, len(result.nodes))
        candidates = [self.extract(node) for node in result.nodes]
        for candidate in candidates:
            self.sink.info("Sub-reference - year: %d - address: %s", candidate.year, candidate.address)

        selected = select_latest(candidates)
        self.sink.info(
            "Selected for %s - year: %d - address: %s", code, selected.year, selected.address
        )
        return selected

    def extract(self, node: Mapping[str, Any]) -> EnrichmentRecord:
        return EnrichmentRecord(
            year=parse_year(_dig(node, self.layout.year_path)),
            address=self.extract_address(node),
        )

    def extract_address(self, node: Mapping[str, Any]) -> str:
        for path in self.layout.address_paths:
            value = _dig(node, path)
            if isinstance(value, str) and value.strip():
                return value.strip()

        line = node.get(self.layout.text_line_key)
        if isinstance(line, str):
            return street_from_text_line(line)
        return ""


def select_latest(candidates: Sequence[EnrichmentRecord]) -> EnrichmentRecord:
    """Return the candidate with the strictly greatest year.

    Ties keep the earliest candidate; without any positive year the first
    candidate is returned.
    """

    if not candidates:
        return EnrichmentRecord()

    selected: EnrichmentRecord | None = None
    for candidate in candidates:
        if candidate.year > (selected.year if selected else 0):
            selected = candidate
    return selected or candidates[0]
