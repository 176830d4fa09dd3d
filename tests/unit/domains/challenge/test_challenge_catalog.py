# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the challenge type and format type catalog."""

import pytest

from src.domains.challenge.catalog import (
    ChallengeCatalog,
    ChallengeTypeConfig,
    FormatTypeConfig,
)
from src.domains.challenge.exceptions import ChallengeValidationError


@pytest.fixture
def catalog() -> ChallengeCatalog:
    """Create a catalog with the built-in entries."""
    return ChallengeCatalog()


class TestNormalizeCode:
    """Tests for ChallengeCatalog.normalize_code."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("critical-thinking", "critical-thinking"),
            ("Critical Thinking", "critical-thinking"),
            ("open_ended", "open-ended"),
            ("  Human-AI  Boundary ", "human-ai-boundary"),
        ],
    )
    def test_loose_spellings(self, raw, expected):
        """Display names and snake_case become kebab-case codes."""
        assert ChallengeCatalog.normalize_code(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "!!", 42])
    def test_invalid(self, raw):
        """Non-strings and symbols have no code."""
        assert ChallengeCatalog.normalize_code(raw) is None


class TestLookups:
    """Lookups over the built-in entries."""

    def test_builtin_types(self, catalog):
        """The system-defined types and formats are present."""
        type_codes = [t.code for t in catalog.list_challenge_types()]
        format_codes = [f.code for f in catalog.list_format_types()]

        assert "ethical-dilemma" in type_codes
        assert "custom" in type_codes
        assert type_codes == sorted(type_codes)
        assert set(format_codes) == {
            "multiple-choice",
            "open-ended",
            "scenario",
            "reflection",
            "simulation",
            "mixed",
        }

    def test_get_by_loose_code(self, catalog):
        """get_* accept the same spellings as resolve_*."""
        assert catalog.get_challenge_type("Ethical Dilemma").name == "Ethical Dilemma"
        assert catalog.get_format_type("multiple_choice").code == "multiple-choice"
        assert catalog.get_challenge_type("astrology") is None

    def test_find_by_format_type(self, catalog):
        """Types are filtered by the formats they support."""
        codes = {t.code for t in catalog.find_by_format_type("simulation")}

        assert codes == {"future-scenario", "technical-implementation"}

    def test_find_by_focus_area(self, catalog):
        """Types are filtered by focus area code."""
        codes = {t.code for t in catalog.find_by_focus_area("ai_ethics")}

        assert codes == {"ethical-dilemma"}


class TestResolve:
    """Tests for resolve_challenge_type and resolve_format_type."""

    def test_resolves_to_canonical_code(self, catalog):
        """Known entries resolve to their code."""
        assert catalog.resolve_challenge_type("Problem Solving") == "problem-solving"
        assert catalog.resolve_format_type("Open Ended") == "open-ended"

    def test_unknown_type_rejected(self, catalog):
        """Unknown challenge types raise with the allowed codes."""
        with pytest.raises(ChallengeValidationError) as exc_info:
            catalog.resolve_challenge_type("astrology")

        assert "ethical-dilemma" in exc_info.value.details["allowed"]

    def test_unknown_format_rejected(self, catalog):
        """Unknown formats raise a validation error."""
        with pytest.raises(ChallengeValidationError):
            catalog.resolve_format_type("interpretive-dance")


class TestRegistration:
    """Tests for custom catalogs."""

    def test_register_new_entries(self, catalog):
        """Registered entries become resolvable."""
        catalog.register_challenge_type(
            ChallengeTypeConfig("prompt-duel", "Prompt Duel", format_types=("open-ended",))
        )
        catalog.register_format_type(FormatTypeConfig("voice", "Voice"))

        assert catalog.resolve_challenge_type("prompt duel") == "prompt-duel"
        assert catalog.resolve_format_type("voice") == "voice"

    def test_inactive_entries_hidden(self):
        """Inactive entries are listed nowhere and do not resolve."""
        catalog = ChallengeCatalog(
            challenge_types=[
                ChallengeTypeConfig("legacy-quiz", "Legacy Quiz", is_active=False),
                ChallengeTypeConfig("communication", "Communication"),
            ],
            format_types=[],
        )

        assert [t.code for t in catalog.list_challenge_types()] == ["communication"]
        assert catalog.get_challenge_type("legacy-quiz") is not None
        with pytest.raises(ChallengeValidationError):
            catalog.resolve_challenge_type("legacy-quiz")

    def test_non_canonical_code_rejected(self, catalog):
        """Registered codes must already be kebab-case."""
        with pytest.raises(ValueError):
            catalog.register_format_type(FormatTypeConfig("Open Ended", "Open Ended"))
