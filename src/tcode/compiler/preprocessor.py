"""
TCode Include Preprocessor
==========================

Expands `include path` lines by splicing in the named file, recursively.
This is an I/O layer around the compiler: TCodeCompiler.compile_source
never touches the file system and rejects any `include` line it sees.

Search Order
------------
1. The directory of the including file
2. Each configured include path, in order

Quotes around the path are optional: `include "lib/leds.tc"` and
`include lib/leds.tc` are the same.

Every output line remembers where it came from (see `origins`), so
errors found after expansion can be reported against the file and line
the user actually wrote.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from tcode.errors import SourceLocation
from tcode.compiler.errors import IncludeError

logger = logging.getLogger(__name__)


class IncludePreprocessor:
    """
    Expands include lines in TCode source.

    Attributes:
        include_paths: Extra directories searched after the including file's
        origins: For each output line, the file and line it came from
    """

    INCLUDE_PATTERN = re.compile(r"^\s*include\s+(.*?)\s*$", re.IGNORECASE)

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        include_paths: Optional[list[str]] = None,
    ):
        self.source = source
        self.filename = filename
        self.include_paths = include_paths or []

        self.origins: list[SourceLocation] = []
        self._output: list[str] = []
        self._include_stack: list[str] = []

    def process(self) -> str:
        """
        Expand all includes.

        Returns:
            Source text with every include line replaced by the file's lines

        Raises:
            IncludeError: If a file is missing, unreadable or includes itself
        """
        self._output = []
        self.origins = []
        self._include_stack = [self._stack_key(self.filename)]
        self._process_lines(self.source.splitlines(), self.filename)
        return "\n".join(self._output)

    def get_included_files(self) -> set[str]:
        """Files that contributed at least one line, besides the main file."""
        return {o.filename for o in self.origins if o.filename != self.filename}

    @staticmethod
    def _stack_key(filename: str) -> str:
        if filename.startswith("<"):
            return filename
        return str(Path(filename).resolve())

    def _process_lines(self, lines: list[str], filename: str) -> None:
        for index, line in enumerate(lines):
            code = line.split(";", 1)[0]
            match = self.INCLUDE_PATTERN.match(code)
            if match is None:
                self._output.append(line)
                self.origins.append(SourceLocation(filename, index + 1))
                continue
            location = SourceLocation(filename, index + 1)
            self._process_include(match.group(1).strip('"'), location, line.strip())

    def _process_include(self, name: str, location: SourceLocation, source_line: str) -> None:
        if not name:
            raise IncludeError(name, "missing file name", location, source_line)

        if location.filename.startswith("<"):
            base = Path(".")
        else:
            base = Path(location.filename).parent
        search_paths = [base] + [Path(p) for p in self.include_paths]

        include_path = None
        for path in search_paths:
            candidate = path / name
            if candidate.is_file():
                include_path = candidate
                break

        if include_path is None:
            raise IncludeError(
                name,
                "file not found",
                location,
                source_line,
                search_paths=[str(p) for p in search_paths],
            )

        key = self._stack_key(str(include_path))
        if key in self._include_stack:
            raise IncludeError(name, "circular include detected", location, source_line)

        try:
            text = include_path.read_text(encoding="utf-8")
        except OSError as e:
            raise IncludeError(name, str(e), location, source_line)

        logger.debug(f"Including {include_path} from {location}")
        self._include_stack.append(key)
        self._process_lines(text.splitlines(), str(include_path))
        self._include_stack.pop()


def read_source(path: str) -> str:
    """
    Read a TCode source file.

    A missing or unreadable file yields empty source, which compiles to
    an empty program.
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Cannot read {path}: {e}")
        return ""
