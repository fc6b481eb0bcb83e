"""
Trace enrichment against a CanDatabase.

Uses python-can to stream BLF/ASC trace files and annotates every frame
whose id is described in the database with its decoded signal values.
The database is only read, never modified.
"""

from pathlib import Path
from typing import Iterable, Iterator, Optional

import can
import numpy as np

from .core import multiplexing
from .core.arena import MessageKey
from .core.database import CanDatabase
from .core.models import EXTENDED_ID_FLAG, CANMessage, DecodedSignal, format_id_hex
from .utils.logging_config import get_logger

logger = get_logger("trace")


class TraceReader:
    """
    Streaming reader for CAN trace files (BLF, ASC).

    Error and remote frames are skipped.
    """

    SUPPORTED_EXTENSIONS = {".blf", ".asc"}

    def __init__(self, file_path: Path | str):
        """
        Args:
            file_path: Path to a BLF or ASC file

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the extension is not supported
        """
        self.file_path = Path(file_path)

        if not self.file_path.exists():
            raise FileNotFoundError(f"CAN trace file not found: {self.file_path}")

        suffix = self.file_path.suffix.lower()
        if suffix not in self.SUPPORTED_EXTENSIONS:
            raise ValueError(
                f"Unsupported file format: {suffix}. "
                f"Supported: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}"
            )

    def iterate_messages(self) -> Iterator[CANMessage]:
        """Yield the data frames of the trace one at a time."""
        logger.info(f"Reading trace: {self.file_path.name}")
        count = 0

        # python-can picks the format from the extension
        with can.LogReader(str(self.file_path)) as reader:
            for msg in reader:
                if msg.is_error_frame or msg.is_remote_frame:
                    continue
                count += 1
                yield CANMessage(
                    timestamp=msg.timestamp,
                    arbitration_id=msg.arbitration_id,
                    data=bytes(msg.data),
                    is_extended_id=msg.is_extended_id,
                    channel=msg.channel if isinstance(msg.channel, int) else 0,
                )

        logger.info(f"Trace complete: {count} frames")


class TraceEnricher:
    """
    Decodes raw frames with the signal layouts of a database.

    Multiplexed signals are only reported when their selector matches the
    current value of their switch.
    """

    def __init__(self, db: CanDatabase):
        self.db = db
        self._lookup_cache: dict[tuple[int, bool], Optional[MessageKey]] = {}
        self.unknown_ids: set[int] = set()

    def lookup(self, frame: CANMessage) -> Optional[MessageKey]:
        """Message key for a frame id; extended frames match ids flagged with bit 31."""
        cache_key = (frame.arbitration_id, frame.is_extended_id)
        if cache_key not in self._lookup_cache:
            candidates = [frame.hex_id]
            if frame.is_extended_id:
                candidates.insert(0, format_id_hex(frame.arbitration_id | EXTENDED_ID_FLAG))
            key = None
            for candidate in candidates:
                key = self.db.message_key_by_id_hex(candidate)
                if key is not None:
                    break
            self._lookup_cache[cache_key] = key
        return self._lookup_cache[cache_key]

    def decode_frame(self, frame: CANMessage) -> list[DecodedSignal]:
        """
        Decode one frame into signal samples.

        Returns:
            Decoded signals in message order. Empty if the id is unknown.
        """
        message_key = self.lookup(frame)
        message = self.db.get_message(message_key)
        if message is None:
            if frame.arbitration_id not in self.unknown_ids:
                self.unknown_ids.add(frame.arbitration_id)
                logger.debug(f"No message for id {frame.hex_id}")
            return []

        decoded = []
        for signal_key in multiplexing.active_signals(message, frame.data, self.db.get_signal):
            signal = self.db.get_signal(signal_key)
            raw = signal.extract_raw(frame.data)
            decoded.append(
                DecodedSignal(
                    timestamp=frame.timestamp,
                    message_name=message.name,
                    message_id=frame.arbitration_id,
                    signal_name=signal.name,
                    raw_value=raw,
                    physical_value=float(signal.decode(frame.data)),
                    unit=signal.unit,
                    text=signal.value_text(raw),
                )
            )
        return decoded

    def iterate_trace(self, file_path: Path | str) -> Iterator[DecodedSignal]:
        """Stream a trace file and yield every decoded signal sample."""
        for frame in TraceReader(file_path).iterate_messages():
            yield from self.decode_frame(frame)


def signal_series(decoded: Iterable[DecodedSignal], name: str) -> tuple[np.ndarray, np.ndarray]:
    """
    Collect the samples of one signal as arrays.

    Args:
        decoded: Decoded samples, e.g. from TraceEnricher.iterate_trace
        name: Signal name or 'Message.Signal'

    Returns:
        (timestamps, physical values) as float64 arrays
    """
    field = "full_name" if "." in name else "signal_name"
    samples = [(s.timestamp, s.physical_value) for s in decoded if getattr(s, field) == name]
    if not samples:
        return np.empty(0, dtype=np.float64), np.empty(0, dtype=np.float64)
    data = np.asarray(samples, dtype=np.float64)
    return data[:, 0], data[:, 1]
