import pytest

from compression_leaderboard.errors import ParseError
from compression_leaderboard.leaderboard.document import (
    ARCHIVE_COLUMNS,
    MAIN_COLUMNS,
    LeaderboardDocument,
    split_row,
)
from compression_leaderboard.leaderboard.submission_result import ArchiveEntry, RankedEntry

HAND_WRITTEN = """# Model Compression Leaderboard

Some prose that must survive.

| Rank | Username | Model Size (MB) | Size Score | Latency (ms) | Latency Score | Accuracy (%) | Accuracy Score | Total Score | Submission Date |
|------|----------|-----------------|------------|--------------|---------------|--------------|----------------|-------------|-----------------|
| 1 | alice | 20.00 | 2.24 | 25.00 | 1.20 | 40.00 | 0.98 | 1.42 | 2025-03-01 10:00:00 UTC |
| 2 | baseline | 44.70 | 1.00 | 30.00 | 1.00 | 40.76 | 1.00 | 1.00 | N/A |

<details>
<summary>All submissions</summary>

| Username | Model Size (MB) | Latency (ms) | Accuracy (%) | Total Score | Submission Date | Notes |
|----------|-----------------|--------------|--------------|-------------|-----------------|-------|
| alice | 20.00 | 25.00 | 40.00 | 1.42 | 2025-03-01 10:00:00 UTC | pruned \\| int8 |

</details>

*Last updated: 2025-03-01 10:00:05 UTC*
"""


class TestClass:
    def test_parse_hand_written(self) -> None:
        document = LeaderboardDocument.parse(HAND_WRITTEN)
        assert [e.username for e in document.entries] == ["alice", "baseline"]
        assert document.entries[0].total_score == 1.42
        assert document.baseline.total_score == 1.0
        assert len(document.archive) == 1
        assert document.archive[0].notes == "pruned | int8"
        assert document.last_updated() == "2025-03-01 10:00:05 UTC"
        assert "Some prose that must survive." in document.head

    def test_render_then_parse_keeps_content(self) -> None:
        document = LeaderboardDocument.parse(HAND_WRITTEN)
        rendered = document.render()
        assert LeaderboardDocument.parse(rendered) == document
        assert "*Last updated: 2025-03-01 10:00:05 UTC*" in rendered
        assert "<summary>All submissions</summary>" in rendered

    def test_new_document(self, baseline) -> None:
        document = LeaderboardDocument.new(baseline)
        parsed = LeaderboardDocument.parse(document.render())
        assert parsed == document
        assert len(parsed.entries) == 1
        assert parsed.entries[0].is_baseline
        assert parsed.archive == []
        assert parsed.last_updated() == "N/A"

    def test_rendered_header_matches_columns(self, baseline) -> None:
        lines = LeaderboardDocument.new(baseline).render().splitlines()
        assert MAIN_COLUMNS in [split_row(line) for line in lines if line.startswith("|")]
        assert ARCHIVE_COLUMNS in [split_row(line) for line in lines if line.startswith("|")]

    def test_ranks_are_positional(self) -> None:
        document = LeaderboardDocument.parse(HAND_WRITTEN)
        ranks = [rank for rank, _ in document.ranked()]
        assert ranks == [1, 2]

    def test_baseline_row_scores_forced(self) -> None:
        text = HAND_WRITTEN.replace(
            "| 2 | baseline | 44.70 | 1.00 | 30.00 | 1.00 | 40.76 | 1.00 | 1.00 | N/A |",
            "| 2 | baseline | 44.70 | 0.50 | 30.00 | 1.00 | 40.76 | 1.00 | 0.80 | 2024 |",
        )
        baseline = LeaderboardDocument.parse(text).baseline
        assert baseline.size_score == 1.0
        assert baseline.total_score == 1.0
        assert baseline.submission_date == "N/A"

    def test_missing_main_table(self) -> None:
        text = HAND_WRITTEN.replace("| Rank | Username |", "| Position | Username |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_missing_archive_table(self) -> None:
        text = HAND_WRITTEN.replace("| Notes |", "| Comment |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_missing_separator(self) -> None:
        lines = HAND_WRITTEN.splitlines()
        index = [i for i, line in enumerate(lines) if line.startswith("| Rank")][0]
        del lines[index + 1]
        with pytest.raises(ParseError):
            LeaderboardDocument.parse("\n".join(lines))

    def test_wrong_cell_count(self) -> None:
        text = HAND_WRITTEN.replace("| 1.42 | 2025-03-01 10:00:00 UTC |\n| 2 |", "| 2025-03-01 10:00:00 UTC |\n| 2 |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_not_a_number(self) -> None:
        text = HAND_WRITTEN.replace("| 1 | alice | 20.00 |", "| 1 | alice | twenty |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_negative_score(self) -> None:
        text = HAND_WRITTEN.replace("| 1 | alice | 20.00 | 2.24 |", "| 1 | alice | 20.00 | -2.24 |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_missing_baseline(self) -> None:
        text = HAND_WRITTEN.replace("| 2 | baseline |", "| 2 | bob |")
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(text)

    def test_duplicated_user(self) -> None:
        lines = HAND_WRITTEN.splitlines()
        index = [i for i, line in enumerate(lines) if line.startswith("| 1 | alice")][0]
        lines.insert(index + 1, lines[index])
        with pytest.raises(ParseError):
            LeaderboardDocument.parse("\n".join(lines))

    def test_archive_before_main(self, baseline) -> None:
        document = LeaderboardDocument.new(baseline)
        main = document.render_main_table()
        archive = document.render_archive_table()
        with pytest.raises(ParseError):
            LeaderboardDocument.parse(archive + "\n\n" + main + "\n")

    def test_last_updated_appended_when_missing(self) -> None:
        text = HAND_WRITTEN.replace("*Last updated: 2025-03-01 10:00:05 UTC*\n", "")
        document = LeaderboardDocument.parse(text)
        assert document.last_updated() is None
        document.set_last_updated("2025-04-01 00:00:00 UTC")
        assert document.last_updated() == "2025-04-01 00:00:00 UTC"
        assert document.render().rstrip().endswith("Last updated: 2025-04-01 00:00:00 UTC")

    def test_notes_pipe_escaped(self, baseline) -> None:
        document = LeaderboardDocument.new(baseline)
        document.archive.append(
            ArchiveEntry(
                username="bob",
                model_size_mb=1,
                latency_ms=2,
                accuracy_pct=3,
                total_score=4,
                submission_date="2025-01-01 00:00:00 UTC",
                notes="a|b",
            )
        )
        parsed = LeaderboardDocument.parse(document.render())
        assert parsed.archive[0].notes == "a|b"

    def test_values_rounded_to_display_precision(self) -> None:
        entry = RankedEntry(
            username="carol",
            model_size_mb=12.3456,
            size_score=3.62109,
            latency_ms=9.999,
            latency_score=3.0003,
            accuracy_pct=40.004,
            accuracy_score=0.98145,
            total_score=2.39123,
            submission_date="2025-01-01 00:00:00 UTC",
        )
        assert entry.model_size_mb == 12.35
        assert entry.latency_ms == 10.0
        assert entry.total_score == 2.39

    def test_prose_mentioning_last_updated_kept(self) -> None:
        prose = "Rankings are last updated after every merged submission."
        text = HAND_WRITTEN.replace("Some prose that must survive.", prose)
        text = text.replace("</details>\n", "</details>\n\nLast updated: 2024-01-01 00:00:00 UTC\n")
        document = LeaderboardDocument.parse(text)
        document.set_last_updated("2025-03-05 12:00:00 UTC")
        rendered = document.render()
        assert prose in rendered
        assert "Last updated: 2024-01-01 00:00:00 UTC" in rendered
        assert rendered.rstrip().endswith("*Last updated: 2025-03-05 12:00:00 UTC*")
        assert document.last_updated() == "2025-03-05 12:00:00 UTC"
