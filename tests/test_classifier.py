from __future__ import annotations

import re

import pytest

from showsort.classifier import (
    NO_MATCH_REASON,
    classify_directory,
    classify_entry,
    classify_file,
    find_skip_pattern,
)
from showsort.compiler import build_rulebook
from showsort.config import AppConfig, Settings, ShowConfig, TemplateConfig
from showsort.models import (
    DIRECTORY,
    Classified,
    Conflict,
    ListingEntry,
    RuleBook,
    RuleGroup,
    RulePattern,
    Unclassified,
)


class TestDirectoryClassifier:
    def test_gossip_girl_season_directory(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Gossip Girl", directory=[r"^Gossip\.Girl.*S(\d+).*$"]))

        result = classify_directory("Gossip.Girl.S02.1080p", rulebook)

        assert isinstance(result, Classified)
        assert result.show == "Gossip Girl"
        assert result.season == 2
        assert result.episode is None

    def test_unrelated_directory_is_unclassified(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Gossip Girl", directory=[r"^Gossip\.Girl.*S(\d+).*$"]))

        result = classify_directory("Random.Folder", rulebook)

        assert result == Unclassified(NO_MATCH_REASON)

    def test_matching_is_case_insensitive(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Gossip Girl", directory=["^<show>.*S<season>"]))

        result = classify_directory("gossip.girl.s03.720p", rulebook)

        assert isinstance(result, Classified)
        assert result.season == 3

    def test_redundant_patterns_that_agree_are_classified(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config(
                "Gossip Girl",
                directory=["^<show>.*S<season>.*$", "<show>.*S<season>.*$"],
            )
        )

        result = classify_directory("Gossip.Girl.S02.1080p", rulebook)

        assert isinstance(result, Classified)
        assert result.season == 2
        assert len(result.patterns) == 2

    def test_two_shows_matching_is_a_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Show A", directory=["S<season>"]),
            show_config("Show B", directory=["S<season>"]),
        )

        result = classify_directory("S01", rulebook)

        assert isinstance(result, Conflict)
        assert result.field == "show"
        assert result.values == ("Show A", "Show B")
        assert "two different shows" in result.reason

    def test_same_show_different_season_is_a_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", directory=[r"^<show>\.S<season>", r"^<show>.*\.<season>$"]),
        )

        result = classify_directory("Face.S01.Extras.2", rulebook)

        assert isinstance(result, Conflict)
        assert result.field == "season"
        assert result.values == ("1", "2")
        assert result.reason == "mismatched season for same show"

    def test_unparsable_capture_is_a_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", directory=[r"^Face\.S(\w+)$"]))

        result = classify_directory("Face.Sxx", rulebook)

        assert isinstance(result, Conflict)
        assert result.field == "season"
        assert result.values == ("xx",)

    def test_wrong_group_count_is_reported_as_conflict(self) -> None:
        corrupted = RulePattern(
            show="Face",
            kind=DIRECTORY,
            template="corrupted",
            regex=re.compile(r"^Face\.S(\d+)E(\d+)"),
            fields=("season",),
        )
        rulebook = RuleBook(groups=(RuleGroup(show="Face", directory_patterns=(corrupted,)),))

        result = classify_directory("Face.S01E02", rulebook)

        assert isinstance(result, Conflict)
        assert result.reason == "wrong number of match groups"

    def test_exact_directory_override(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Gossip Girl", directory=["^<show>.*S<season>"], exact={"S02": 2}),
        )

        result = classify_directory("S02", rulebook)

        assert isinstance(result, Classified)
        assert (result.show, result.season) == ("Gossip Girl", 2)
        assert result.patterns == ()

    def test_exact_directory_must_agree_with_patterns(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", directory=["^<show>.*S<season>"], exact={"Face.S03": 2}),
        )

        result = classify_directory("Face.S03", rulebook)

        assert isinstance(result, Conflict)
        assert result.values == ("2", "3")

    def test_exact_directory_claimed_by_other_show_pattern_conflicts(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Gossip Girl", exact={"S02": 2}),
            show_config("Loose", directory=["^S<season>$"]),
        )

        result = classify_directory("S02", rulebook)

        assert isinstance(result, Conflict)
        assert result.values == ("Gossip Girl", "Loose")

    def test_custom_separator(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Gossip Girl", directory=["^<show>_S<season>"]),
            separator="_",
        )

        assert isinstance(classify_directory("Gossip_Girl_S01", rulebook), Classified)
        assert isinstance(classify_directory("Gossip.Girl.S01", rulebook), Unclassified)

    def test_patterns_are_ranked_by_priority(self) -> None:
        show = ShowConfig(
            name="Face",
            directory_patterns=[
                TemplateConfig(template="<show>.*S<season>", priority=5),
                TemplateConfig(template="^<show>.*S<season>", priority=10),
            ],
        )
        rulebook = build_rulebook(AppConfig(settings=Settings(use_default_skip_patterns=False), shows=[show]))

        result = classify_directory("Face.S04", rulebook)

        assert isinstance(result, Classified)
        assert [pattern.priority for pattern in result.patterns] == [10, 5]


class TestFileClassifier:
    def test_season_and_episode_from_different_patterns(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", file=["^<show>.*S<season>", "^<show>.*E<episode>"]))

        result = classify_file("Face.S01E01.mkv", rulebook)

        assert isinstance(result, Classified)
        assert (result.show, result.season, result.episode) == ("Face", 1, 1)

    def test_full_file_pattern(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Gossip Girl", file=["^<show>.*S<season>E<episode>.*$"]))

        result = classify_file("Gossip.Girl.S02E13.720p.mkv", rulebook)

        assert isinstance(result, Classified)
        assert result.label() == "Gossip Girl S02E13"

    def test_ambiguous_name_for_two_shows_is_a_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Show A", file=["S<season>E<episode>"]),
            show_config("Show B", file=["S<season>E<episode>"]),
        )

        result = classify_file("S01E01.mkv", rulebook)

        assert isinstance(result, Conflict)
        assert "Show A" in result.values
        assert "Show B" in result.values
        assert "Show A" in result.describe() and "Show B" in result.describe()

    def test_skip_pattern_takes_precedence(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", file=["^<show>.*S<season>E<episode>"]),
            skip_patterns=[r"\.srt$"],
        )

        result = classify_file("Face.S01E01.srt", rulebook)

        assert isinstance(result, Unclassified)
        assert result.skipped is True
        assert result.skip_pattern is not None
        assert result.skip_pattern.template == r"\.srt$"

    def test_skip_pattern_beats_a_would_be_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Show A", file=["S<season>E<episode>"]),
            show_config("Show B", file=["S<season>E<episode>"]),
            skip_patterns=[r"\.nfo$"],
        )

        result = classify_file("S01E01.nfo", rulebook)

        assert isinstance(result, Unclassified)
        assert result.skipped

    def test_group_skip_patterns_apply_before_matching(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", file=["^<show>.*S<season>E<episode>"], skip=[r"^<show>.*\.sfv$"]),
        )

        assert classify_file("Face.S01E01.sfv", rulebook).skipped
        assert isinstance(classify_file("Face.S01E01.mkv", rulebook), Classified)

    def test_default_skip_patterns(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", file=["^<show>.*S<season>E<episode>"]),
            use_default_skip_patterns=True,
        )

        assert classify_file("Face.S01E01.sample.mkv", rulebook).skipped
        assert classify_file("Face.S01E01.SRT", rulebook).skipped
        assert isinstance(classify_file("Face.S01E01.mkv", rulebook), Classified)

    def test_partial_match_is_a_miss(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", file=["^<show>.*S<season>"]))

        result = classify_file("Face.S01E01.mkv", rulebook)

        assert isinstance(result, Unclassified)
        assert result.skipped is False
        assert "episode" in result.reason

    def test_episode_only_match_is_a_miss(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", file=[r"^<show><sep>-<sep><episode>\b"]))

        result = classify_file("Face - 07.mkv", rulebook)

        assert isinstance(result, Unclassified)
        assert "season" in result.reason

    def test_mismatched_episode_is_a_conflict(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", file=["^<show>.*S<season>E<episode>", r"^<show>.*\(ep<episode>\)"]),
        )

        result = classify_file("Face.S01E02.(ep03).mkv", rulebook)

        assert isinstance(result, Conflict)
        assert result.field == "episode"
        assert result.values == ("2", "3")

    def test_episode_before_season_in_template(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", file=["^<show>.*E<episode>.*S<season>"]))

        result = classify_file("Face.E05.S02.mkv", rulebook)

        assert isinstance(result, Classified)
        assert (result.season, result.episode) == (2, 5)

    def test_positional_groups_are_season_then_episode(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", file=[r"^Face\.(\d+)x(\d+)"]))

        result = classify_file("Face.3x04.mkv", rulebook)

        assert isinstance(result, Classified)
        assert (result.season, result.episode) == (3, 4)

    def test_directory_patterns_do_not_classify_files(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", directory=["^<show>.*S<season>"]))

        assert classify_file("Face.S01E01.mkv", rulebook) == Unclassified(NO_MATCH_REASON)


class TestNoMatchNeverConflicts:
    @pytest.mark.parametrize("name", ["", "Random.Folder", "S01E01.mkv", "Face"])
    def test_empty_rulebook(self, name: str) -> None:
        rulebook = RuleBook()

        assert classify_directory(name, rulebook) == Unclassified(NO_MATCH_REASON)
        assert classify_file(name, rulebook) == Unclassified(NO_MATCH_REASON)

    def test_non_matching_rules(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Show A", directory=["^<show>.*S<season>"], file=["^<show>.*S<season>E<episode>"]),
            show_config("Show B", directory=["^<show>.*S<season>"], file=["^<show>.*S<season>E<episode>"]),
        )

        assert isinstance(classify_directory("Other.Show.S01", rulebook), Unclassified)
        assert isinstance(classify_file("Other.Show.S01E01.mkv", rulebook), Unclassified)


class TestClassifyEntry:
    def test_routes_by_entry_kind(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(
            show_config("Face", directory=["^<show>.*S<season>"], file=["^<show>.*S<season>E<episode>"]),
        )

        directory = classify_entry(ListingEntry("Face.S01E02", is_dir=True), rulebook)
        file = classify_entry(ListingEntry("Face.S01E02", is_dir=False), rulebook)

        assert isinstance(directory, Classified) and directory.episode is None
        assert isinstance(file, Classified) and file.episode == 2

    def test_find_skip_pattern_returns_first_match(self, rulebook_factory, show_config) -> None:
        rulebook = rulebook_factory(show_config("Face", skip=[r"\.txt$"]), skip_patterns=[r"\.(txt|nfo)$"])

        pattern = find_skip_pattern("notes.txt", rulebook)

        assert pattern is not None
        assert pattern.show == ""
        assert find_skip_pattern("Face.mkv", rulebook) is None
