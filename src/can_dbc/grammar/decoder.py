"""
DBC grammar decoder.

Streams the lines of a DBC file through one handler per statement keyword:
- Keywords are matched case-insensitively, names case-sensitively
- CM_ statements whose quoted text is still open swallow following lines
- The NS_ keyword block and BS_ are recognized and ignored
- A statement that does not parse is dropped and counted; the parse goes on

File-level problems (wrong extension, cannot open, cannot read) raise a
DbcFileError and abort the load.
"""

import time
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from ..core.database import CanDatabase
from ..core.errors import InvalidExtension, OpenFileError, ReadError
from ..utils.logging_config import get_logger
from . import attributes, comments, statements
from .context import DecoderContext, Outcome, ParseStats
from .strings import has_open_quote, strip_statement, transliterate

logger = get_logger("decoder")

Handler = Callable[[DecoderContext, str], Outcome]

HANDLERS: dict[str, Handler] = {
    "VERSION": statements.decode_version,
    "BU_": statements.decode_nodes,
    "BO_": statements.decode_message,
    "SG_": statements.decode_signal,
    "BO_TX_BU_": statements.decode_transmitters,
    "VAL_": statements.decode_value_descriptions,
    "VAL_TABLE_": statements.decode_value_table,
    "SIG_VALTYPE_": statements.decode_signal_value_type,
    "CM_": comments.decode_comment,
    "BA_DEF_": attributes.decode_definition,
    "BA_DEF_REL_": attributes.decode_relation_definition,
    "BA_DEF_DEF_": attributes.decode_default,
    "BA_DEF_DEF_REL_": attributes.decode_relation_default,
    "BA_": attributes.decode_assignment,
    "BA_REL_": attributes.decode_relation_assignment,
}

# Recognized but carrying nothing this model stores
IGNORED_KEYWORDS = {"NS_", "BS_"}


def _keyword(statement: str) -> str:
    tokens = statement.split(None, 1)
    if not tokens:
        return ""
    first = tokens[0]
    return first.split(":", 1)[0].upper()


class DbcDecoder:
    """
    Builds a CanDatabase from DBC text.

    A decoder instance may be fed several sources in turn; they all land in
    the same database. stats describes the most recent decode call.
    """

    SUPPORTED_EXTENSIONS = {".dbc"}
    SOURCE_ENCODING = "cp1252"

    def __init__(self, db: Optional[CanDatabase] = None):
        self.context = DecoderContext(db if db is not None else CanDatabase())
        self.stats = ParseStats()

    @property
    def db(self) -> CanDatabase:
        return self.context.db

    def decode_file(self, file_path: Path | str) -> CanDatabase:
        """
        Load a DBC file.

        Args:
            file_path: Path to a .dbc file

        Returns:
            The populated database

        Raises:
            InvalidExtension: Path does not end in .dbc
            OpenFileError: File cannot be opened
            ReadError: File cannot be read
        """
        path = Path(file_path)
        if path.suffix.lower() not in self.SUPPORTED_EXTENSIONS:
            raise InvalidExtension(
                f"Unsupported file format: {path.suffix or '<none>'}. "
                f"Supported: {', '.join(sorted(self.SUPPORTED_EXTENSIONS))}",
                path=path,
            )

        logger.info(f"Loading DBC: {path.name}")
        try:
            handle = open(path, "r", encoding=self.SOURCE_ENCODING, errors="replace")
        except OSError as e:
            raise OpenFileError(f"Cannot open DBC file {path}: {e}", path=path, original_error=e)
        with handle:
            try:
                text = handle.read()
            except OSError as e:
                raise ReadError(f"Cannot read DBC file {path}: {e}", path=path, original_error=e)

        if not self.db.name:
            self.db.name = path.stem
        return self.decode_text(text)

    def decode_text(self, text: str) -> CanDatabase:
        """Decode DBC text that is already in memory."""
        return self.decode_lines(transliterate(text).splitlines())

    def decode_lines(self, lines: Iterable[str]) -> CanDatabase:
        """Decode an iterable of physical lines."""
        self.stats = ParseStats()
        started = time.perf_counter()

        for line_number, statement in self._statements(lines):
            keyword = _keyword(statement)
            handler = HANDLERS.get(keyword)
            if handler is None:
                if keyword not in IGNORED_KEYWORDS:
                    self.stats.unknown += 1
                    logger.debug(f"Line {line_number}: unsupported keyword {keyword}")
                continue

            self.context.line_number = line_number
            outcome = handler(self.context, statement)
            self.stats.record(line_number, outcome)
            if not outcome.applied:
                logger.debug(f"Line {line_number}: dropped {keyword} ({outcome.reason})")

        self.stats.elapsed_seconds = time.perf_counter() - started
        db = self.db
        logger.info(
            f"Decoded {self.stats.applied}/{self.stats.statements} statements: "
            f"{db.node_count} nodes, {db.message_count} messages, {db.signal_count} signals "
            f"in {self.stats.elapsed_seconds:.3f}s"
        )
        if self.stats.skipped:
            logger.warning(f"Dropped {self.stats.skipped} malformed or unresolvable statements")
        return db

    def _statements(self, lines: Iterable[str]) -> Iterator[tuple[int, str]]:
        """
        Yield (line number, statement) pairs.

        Skips blank and // comment lines and the body of the NS_ block, and
        joins the physical lines of multi-line comments.
        """
        in_namespace = False
        iterator = enumerate(lines, start=1)
        for line_number, line in iterator:
            self.stats.lines += 1
            stripped = line.strip()
            if not stripped or stripped.startswith("//"):
                continue

            if in_namespace:
                # NS_ entries are indented keyword names
                if line[:1].isspace() and len(stripped.split()) == 1:
                    continue
                in_namespace = False

            if _keyword(stripped) == "NS_":
                in_namespace = True
                continue

            if _keyword(stripped) == "CM_" and has_open_quote(stripped):
                parts = [stripped]
                for _, continuation in iterator:
                    self.stats.lines += 1
                    parts.append(continuation.rstrip("\r"))
                    if not has_open_quote("\n".join(parts)):
                        break
                stripped = "\n".join(parts).strip()

            statement = strip_statement(stripped)
            # A lone terminator carries no statement
            if statement:
                yield line_number, statement


def load_file(file_path: Path | str, db: Optional[CanDatabase] = None) -> CanDatabase:
    """Parse a DBC file into a new (or the given) database."""
    return DbcDecoder(db).decode_file(file_path)


def load_string(text: str, db: Optional[CanDatabase] = None) -> CanDatabase:
    """Parse DBC text into a new (or the given) database."""
    return DbcDecoder(db).decode_text(text)
