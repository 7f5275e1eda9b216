"""
Markdown leaderboard document: a ranked main table, an append-only archive
table and free prose around them, which is kept verbatim.
"""
import re
from typing import List, Optional, Tuple

from prettytable import PrettyTable, TableStyle
from pydantic import ValidationError

from compression_leaderboard.errors import ParseError
from compression_leaderboard.leaderboard.submission_result import (
    BASELINE_USERNAME,
    NOT_AVAILABLE,
    ArchiveEntry,
    RankedEntry,
)
from compression_leaderboard.scoring import DEFAULT_WEIGHTS, Baseline, ScoreWeights

MAIN_COLUMNS = [
    "Rank",
    "Username",
    "Model Size (MB)",
    "Size Score",
    "Latency (ms)",
    "Latency Score",
    "Accuracy (%)",
    "Accuracy Score",
    "Total Score",
    "Submission Date",
]

ARCHIVE_COLUMNS = [
    "Username",
    "Model Size (MB)",
    "Latency (ms)",
    "Accuracy (%)",
    "Total Score",
    "Submission Date",
    "Notes",
]

SEPARATOR_RE = re.compile(r"^\|?(\s*:?-+:?\s*\|)*\s*:?-+:?\s*\|?$")
CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")
LAST_UPDATED_RE = re.compile(r"^(?P<prefix>\**Last updated:\**\s*)(?P<value>.*?)(?P<suffix>\**\s*)$")


def is_table_line(line: str) -> bool:
    return line.strip().startswith("|")


def split_row(line: str) -> List[str]:
    s = line.strip()
    if s.startswith("|"):
        s = s[1:]
    if s.endswith("|") and not s.endswith("\\|"):
        s = s[:-1]
    return [c.strip().replace("\\|", "|") for c in CELL_SPLIT_RE.split(s)]


def escape_cell(value: str) -> str:
    return str(value).replace("|", "\\|")


def fmt(value: float) -> str:
    return f"{value:.2f}"


def parse_number(cell: str, column: str, line_number: int) -> float:
    try:
        return float(cell)
    except ValueError:
        raise ParseError(f"line {line_number}: '{cell}' is not a number ({column})") from None


class LeaderboardDocument:
    def __init__(
            self,
            head: List[str],
            entries: List[RankedEntry],
            middle: List[str],
            archive: List[ArchiveEntry],
            tail: List[str],
    ) -> None:
        self.head = head
        self.entries = entries
        self.middle = middle
        self.archive = archive
        self.tail = tail

    def __eq__(self, __value: object) -> bool:
        if not isinstance(__value, LeaderboardDocument):
            return False
        return (
                self.head == __value.head
                and self.entries == __value.entries
                and self.middle == __value.middle
                and self.archive == __value.archive
                and self.tail == __value.tail
        )

    def copy(self) -> "LeaderboardDocument":
        return LeaderboardDocument(
            list(self.head), list(self.entries), list(self.middle), list(self.archive), list(self.tail)
        )

    @property
    def baseline(self) -> RankedEntry:
        for entry in self.entries:
            if entry.is_baseline:
                return entry
        raise ParseError("The main table has no baseline row")

    def ranked(self) -> List[Tuple[int, RankedEntry]]:
        return [(i + 1, entry) for i, entry in enumerate(self.entries)]

    def find(self, username: str) -> Optional[int]:
        for i, entry in enumerate(self.entries):
            if entry.username == username:
                return i
        return None

    # Last updated line

    def __last_updated_line__(self) -> Optional[Tuple[List[str], int]]:
        # Only the last marker line counts, prose mentioning it is left alone
        found = None
        for section in (self.head, self.middle, self.tail):
            for i, line in enumerate(section):
                if LAST_UPDATED_RE.match(line):
                    found = (section, i)
        return found

    def last_updated(self) -> Optional[str]:
        found = self.__last_updated_line__()
        if found is None:
            return None
        section, i = found
        return LAST_UPDATED_RE.match(section[i]).group("value")

    def set_last_updated(self, timestamp: str) -> None:
        found = self.__last_updated_line__()
        if found is None:
            if len(self.tail) > 0 and self.tail[-1].strip() != "":
                self.tail.append("")
            self.tail.append(f"Last updated: {timestamp}")
            return
        section, i = found
        match = LAST_UPDATED_RE.match(section[i])
        section[i] = f"{match.group('prefix')}{timestamp}{match.group('suffix')}"

    # Parsing

    @staticmethod
    def __find_table__(lines: List[str], columns: List[str], name: str) -> Tuple[int, int]:
        """
        Locate a table by its header
        :return: (index of the header line, index after the last row)
        """
        headers = [
            i for i, line in enumerate(lines) if is_table_line(line) and split_row(line) == columns
        ]
        if len(headers) == 0:
            raise ParseError(f"{name} table not found, expected header: {' | '.join(columns)}")
        if len(headers) > 1:
            raise ParseError(f"{name} table found {len(headers)} times")
        start = headers[0]
        if start + 1 >= len(lines) or not SEPARATOR_RE.match(lines[start + 1].strip()):
            raise ParseError(f"line {start + 2}: {name} table header is not followed by a separator")
        end = start + 2
        while end < len(lines) and is_table_line(lines[end]):
            end += 1
        return start, end

    @staticmethod
    def __rows__(lines: List[str], start: int, end: int, columns: List[str], name: str):
        for i in range(start + 2, end):
            cells = split_row(lines[i])
            if len(cells) != len(columns):
                raise ParseError(
                    f"line {i + 1}: {name} row has {len(cells)} cells, expected {len(columns)}"
                )
            yield i + 1, cells

    @staticmethod
    def __main_entry__(cells: List[str], line_number: int) -> RankedEntry:
        username = cells[1]
        numbers = {
            column: parse_number(cells[index], column, line_number)
            for index, column in enumerate(MAIN_COLUMNS)
            if index not in (0, 1, 9)
        }
        if username == BASELINE_USERNAME:
            # Baseline scores are 1.00 by definition
            try:
                Baseline(
                    size_mb=numbers["Model Size (MB)"],
                    latency_ms=numbers["Latency (ms)"],
                    accuracy_pct=numbers["Accuracy (%)"],
                )
            except ValidationError as e:
                raise ParseError(f"line {line_number}: invalid baseline row: {e}") from e
            return RankedEntry.for_baseline(
                numbers["Model Size (MB)"], numbers["Latency (ms)"], numbers["Accuracy (%)"]
            )
        return RankedEntry(
            username=username,
            model_size_mb=numbers["Model Size (MB)"],
            size_score=numbers["Size Score"],
            latency_ms=numbers["Latency (ms)"],
            latency_score=numbers["Latency Score"],
            accuracy_pct=numbers["Accuracy (%)"],
            accuracy_score=numbers["Accuracy Score"],
            total_score=numbers["Total Score"],
            submission_date=cells[9],
        )

    @staticmethod
    def __archive_entry__(cells: List[str], line_number: int) -> ArchiveEntry:
        return ArchiveEntry(
            username=cells[0],
            model_size_mb=parse_number(cells[1], ARCHIVE_COLUMNS[1], line_number),
            latency_ms=parse_number(cells[2], ARCHIVE_COLUMNS[2], line_number),
            accuracy_pct=parse_number(cells[3], ARCHIVE_COLUMNS[3], line_number),
            total_score=parse_number(cells[4], ARCHIVE_COLUMNS[4], line_number),
            submission_date=cells[5],
            notes=cells[6],
        )

    @staticmethod
    def parse(text: str) -> "LeaderboardDocument":
        lines = text.splitlines()
        main_start, main_end = LeaderboardDocument.__find_table__(lines, MAIN_COLUMNS, "Main")
        archive_start, archive_end = LeaderboardDocument.__find_table__(
            lines, ARCHIVE_COLUMNS, "Archive"
        )
        if archive_start < main_end:
            raise ParseError("The archive table must follow the main table")

        try:
            entries = [
                LeaderboardDocument.__main_entry__(cells, n)
                for n, cells in LeaderboardDocument.__rows__(lines, main_start, main_end, MAIN_COLUMNS, "Main")
            ]
            archive = [
                LeaderboardDocument.__archive_entry__(cells, n)
                for n, cells in LeaderboardDocument.__rows__(
                    lines, archive_start, archive_end, ARCHIVE_COLUMNS, "Archive"
                )
            ]
        except ValidationError as e:
            raise ParseError(f"Invalid leaderboard row: {e}") from e

        usernames = [e.username for e in entries]
        duplicated = {u for u in usernames if usernames.count(u) > 1}
        if duplicated:
            raise ParseError(f"Duplicated main table rows for {', '.join(sorted(duplicated))}")

        document = LeaderboardDocument(
            head=lines[:main_start],
            entries=entries,
            middle=lines[main_end:archive_start],
            archive=archive,
            tail=lines[archive_end:],
        )
        # Raises if missing
        document.baseline
        return document

    # Rendering

    @staticmethod
    def __markdown_table__(columns: List[str]) -> PrettyTable:
        table = PrettyTable(columns)
        table.set_style(TableStyle.MARKDOWN)
        table.align = "l"
        return table

    def render_main_table(self) -> str:
        table = LeaderboardDocument.__markdown_table__(MAIN_COLUMNS)
        for rank, e in self.ranked():
            table.add_row(
                [
                    rank,
                    escape_cell(e.username),
                    fmt(e.model_size_mb),
                    fmt(e.size_score),
                    fmt(e.latency_ms),
                    fmt(e.latency_score),
                    fmt(e.accuracy_pct),
                    fmt(e.accuracy_score),
                    fmt(e.total_score),
                    escape_cell(e.submission_date),
                ]
            )
        return table.get_string()

    def render_archive_table(self) -> str:
        table = LeaderboardDocument.__markdown_table__(ARCHIVE_COLUMNS)
        for e in self.archive:
            table.add_row(
                [
                    escape_cell(e.username),
                    fmt(e.model_size_mb),
                    fmt(e.latency_ms),
                    fmt(e.accuracy_pct),
                    fmt(e.total_score),
                    escape_cell(e.submission_date),
                    escape_cell(e.notes),
                ]
            )
        return table.get_string()

    def render(self) -> str:
        lines = (
                self.head
                + self.render_main_table().splitlines()
                + self.middle
                + self.render_archive_table().splitlines()
                + self.tail
        )
        return "\n".join(lines) + "\n"

    @staticmethod
    def new(baseline: Baseline, weights: ScoreWeights = DEFAULT_WEIGHTS) -> "LeaderboardDocument":
        """
        Empty leaderboard holding only the baseline row
        """
        head = [
            "# Model Compression Leaderboard",
            "",
            "Every submission is evaluated on the held-out validation set and scored against the baseline model:",
            "",
            "- Size Score = baseline size / model size",
            "- Latency Score = baseline latency / model latency",
            "- Accuracy Score = model accuracy / baseline accuracy",
            f"- Total Score = {weights.size} x Size Score + {weights.latency} x Latency Score"
            + f" + {weights.accuracy} x Accuracy Score",
            "",
            "## Rankings",
            "",
        ]
        middle = [
            "",
            "## Submission History",
            "",
            "<details>",
            "<summary>All submissions</summary>",
            "",
        ]
        tail = [
            "",
            "</details>",
            "",
            f"Last updated: {NOT_AVAILABLE}",
        ]
        entries = [
            RankedEntry.for_baseline(baseline.size_mb, baseline.latency_ms, baseline.accuracy_pct)
        ]
        return LeaderboardDocument(head, entries, middle, [], tail)
