"""Best-effort JSON decoding for payloads with broken text encoding."""

from __future__ import annotations

import codecs
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

from ..core import LogSink
from ..core.exceptions import Undecodable

DETECTION_CANDIDATES: tuple[str, ...] = ("utf-8", "iso-8859-1", "windows-1252")
FORCED_ENCODINGS: tuple[str, ...] = ("utf-8", "iso-8859-1", "windows-1252", "ascii")

# Anything but tab, LF, CR and the BMP outside the surrogate block.
_UNSAFE_CHARACTERS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd]")


class StrategyState(str, Enum):
    NOT_TRIED = "not_tried"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass(slots=True)
class DecodeAttempt:
    strategy: str
    state: StrategyState = StrategyState.NOT_TRIED
    error: str = ""


@dataclass(slots=True)
class DecodeReport:
    document: Any
    strategy: str
    attempts: list[DecodeAttempt] = field(default_factory=list)


def decode_with_spaces(raw: bytes, encoding: str) -> tuple[str, int]:
    """Decode ``raw`` replacing each invalid byte sequence with one space.

    Returns the text and the number of sequences that were replaced.
    """

    pieces: list[str] = []
    invalid = 0
    view = raw
    while True:
        try:
            pieces.append(view.decode(encoding))
            break
        except UnicodeDecodeError as exc:
            pieces.append(view[: exc.start].decode(encoding))
            pieces.append(" ")
            invalid += 1
            view = view[exc.end :]
    return "".join(pieces), invalid


def detect_source_encoding(raw: bytes, candidates: Sequence[str] = DETECTION_CANDIDATES) -> str:
    """Return the first candidate encoding that fits ``raw``.

    UTF-8 fits unless the payload holds more than one invalid sequence and
    more invalid sequences than valid non-ASCII characters; a stray bad byte
    in otherwise UTF-8 text keeps the UTF-8 reading. Single-byte candidates
    fit when they decode strictly.
    """

    for candidate in candidates:
        if codecs.lookup(candidate).name == "utf-8":
            text, invalid = decode_with_spaces(raw, candidate)
            non_ascii = sum(1 for char in text if ord(char) > 0x7F)
            if invalid <= max(1, non_ascii):
                return candidate
            continue
        try:
            raw.decode(candidate)
        except UnicodeDecodeError:
            continue
        return candidate
    return candidates[0]


def sanitize_text(text: str) -> str:
    """Replace each control or out-of-range character with one space."""

    return _UNSAFE_CHARACTERS.sub(" ", text)


class EncodingRecovery:
    """Parse JSON through an ordered list of decoding strategies.

    Strategies run in order and the first one that yields a document wins:

    ``strict``
        UTF-8 (BOM tolerated) and a strict parse.
    ``sanitized``
        Detect the source encoding, convert to text, replace invalid
        sequences and unsafe characters with spaces, parse leniently.
    ``forced``
        Force-convert from each of :data:`FORCED_ENCODINGS` with substitution
        and parse after each one.
    """

    def __init__(
        self,
        *,
        candidates: Sequence[str] = DETECTION_CANDIDATES,
        forced_encodings: Sequence[str] = FORCED_ENCODINGS,
        sink: LogSink | None = None,
    ):
        self.candidates = tuple(candidates)
        self.forced_encodings = tuple(forced_encodings)
        self.sink = sink or LogSink()
        self.strategies: list[tuple[str, Callable[[bytes], Any]]] = [
            ("strict", self._strict),
            ("sanitized", self._sanitized),
            ("forced", self._forced),
        ]

    def decode(self, payload: bytes | str) -> Any:
        return self.run(payload).document

    def run(self, payload: bytes | str) -> DecodeReport:
        raw = payload.encode("utf-8", errors="surrogatepass") if isinstance(payload, str) else bytes(payload)
        attempts = [DecodeAttempt(strategy=name) for name, _ in self.strategies]

        for attempt, (name, strategy) in zip(attempts, self.strategies):
            try:
                document = strategy(raw)
            except ValueError as exc:
                attempt.state = StrategyState.FAILED
                attempt.error = str(exc)
                self.sink.warning("JSON decoding strategy '%s' failed: %s", name, exc)
                continue
            attempt.state = StrategyState.SUCCEEDED
            self.sink.info("JSON decoded with strategy '%s'", name)
            return DecodeReport(document=document, strategy=name, attempts=attempts)

        self.sink.error("JSON could not be decoded after %d strategies", len(attempts))
        raise Undecodable(
            "JSON payload could not be decoded",
            details={"attempts": {attempt.strategy: attempt.error for attempt in attempts}},
        )

    def _strict(self, raw: bytes) -> Any:
        return json.loads(raw.decode("utf-8-sig"))

    def _sanitized(self, raw: bytes) -> Any:
        encoding = detect_source_encoding(raw, self.candidates)
        text, invalid = decode_with_spaces(raw, encoding)
        self.sink.info("Detected %s, replaced %d invalid sequence(s)", encoding, invalid)
        text = sanitize_text(text.removeprefix("\ufeff"))
        return json.loads(text, strict=False)

    def _forced(self, raw: bytes) -> Any:
        for encoding in self.forced_encodings:
            try:
                document = json.loads(raw.decode(encoding, errors="replace"), strict=False)
            except ValueError as exc:
                self.sink.warning("Forced conversion from %s failed: %s", encoding, exc)
                continue
            self.sink.info("JSON decoded after forced conversion from %s", encoding)
            return document
        raise ValueError("no forced conversion produced valid JSON")
