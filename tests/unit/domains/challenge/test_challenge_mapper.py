# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ChallengeMapper.

Tests cover:
- Record to entity and back for canonical records
- JSON-text nested fields and legacy camelCase keys
- Malformed JSON degrading to safe defaults
- Collection mapping
"""

import json
import logging

import pytest

from src.domains.challenge.exceptions import ChallengeValidationError
from src.domains.challenge.mapper import ChallengeMapper
from src.domains.challenge.models import ChallengeStatus


@pytest.fixture
def completed_record(challenge_record) -> dict:
    """A canonical record of a completed challenge."""
    return {
        **challenge_record,
        "responses": [
            {
                "id": "r1",
                "content": "The model penalizes gaps in employment",
                "question_id": "q1",
                "timestamp": "2025-01-15T10:10:00+00:00",
            }
        ],
        "evaluation": {"score": 78, "feedback": "Good catch", "strengths": ["focus"]},
        "score": 78,
        "status": "completed",
        "updated_at": "2025-01-15T10:12:00+00:00",
        "submitted_at": "2025-01-15T10:10:00+00:00",
        "completed_at": "2025-01-15T10:12:00+00:00",
    }


class TestRoundTrip:
    """to_database(to_domain(record)) == record."""

    def test_pending_record(self, challenge_record):
        """A pending record survives the round trip."""
        challenge = ChallengeMapper.to_domain(challenge_record)

        assert ChallengeMapper.to_database(challenge) == challenge_record

    def test_completed_record(self, completed_record):
        """A completed record survives the round trip."""
        challenge = ChallengeMapper.to_domain(completed_record)

        assert challenge.status is ChallengeStatus.COMPLETED
        assert ChallengeMapper.to_database(challenge) == completed_record

    def test_json_encoded_fields(self, completed_record):
        """Nested fields stored as JSON text decode to the same record."""
        encoded = dict(completed_record)
        for name in (
            "content",
            "questions",
            "responses",
            "evaluation",
            "evaluation_criteria",
            "difficulty_settings",
        ):
            encoded[name] = json.dumps(completed_record[name])

        challenge = ChallengeMapper.to_domain(encoded)

        assert ChallengeMapper.to_database(challenge) == completed_record

    def test_legacy_camel_case_keys(self, challenge_record):
        """Records written with camelCase keys are read."""
        legacy = {
            "id": challenge_record["id"],
            "title": challenge_record["title"],
            "challengeType": "scenario",
            "focusArea": "ai_ethics",
            "userEmail": "ada@example.com",
            "createdAt": "2025-01-15T10:00:00Z",
            "status": "active",
        }

        challenge = ChallengeMapper.to_domain(legacy)

        assert challenge.challenge_type == "scenario"
        assert challenge.focus_area == "ai_ethics"
        assert challenge.user_email == "ada@example.com"
        assert challenge.status is ChallengeStatus.PENDING
        assert ChallengeMapper.to_database(challenge)["created_at"] == "2025-01-15T10:00:00+00:00"


class TestLenientParsing:
    """Malformed stored values degrade instead of failing."""

    def test_malformed_json_uses_defaults(self, challenge_record):
        """Broken JSON in nested fields falls back to empty values."""
        record = {
            **challenge_record,
            "questions": "[not json",
            "evaluation_criteria": "{broken",
            "difficulty_settings": "nope{",
        }

        challenge = ChallengeMapper.to_domain(record)

        assert challenge.questions == []
        assert challenge.evaluation_criteria == []
        assert challenge.difficulty_settings == {}

    def test_completed_row_with_malformed_evaluation_loads(self, completed_record, caplog):
        """A completed row whose evaluation JSON is broken is still read."""
        record = {**completed_record, "evaluation": "{not json"}

        with caplog.at_level(logging.ERROR, logger="src.domains.challenge.mapper"):
            challenge = ChallengeMapper.to_domain(record)

        assert challenge.status is ChallengeStatus.COMPLETED
        assert challenge.evaluation is None
        assert challenge.get_score() == 78
        assert "evaluation" in caplog.text

    def test_submitted_row_with_malformed_responses_loads(self, challenge_record):
        """A submitted row whose responses JSON is broken is still read."""
        record = {
            **challenge_record,
            "status": "submitted",
            "responses": "[{broken",
            "submitted_at": "2025-01-15T10:10:00+00:00",
        }

        challenge = ChallengeMapper.to_domain(record)

        assert challenge.status is ChallengeStatus.SUBMITTED
        assert challenge.responses == []

    def test_canonical_form_of_inconsistent_row_reloads(self, completed_record):
        """The cached form of an inconsistent row maps back without raising."""
        challenge = ChallengeMapper.to_domain({**completed_record, "evaluation": "{not json"})

        reloaded = ChallengeMapper.to_domain(ChallengeMapper.to_database(challenge))

        assert reloaded.id == challenge.id
        assert reloaded.evaluation is None

    def test_plain_text_content(self, challenge_record):
        """Non-JSON text content becomes instructions."""
        challenge = ChallengeMapper.to_domain({**challenge_record, "content": "Just do it"})

        assert challenge.content == {"instructions": "Just do it"}

    def test_string_score_parsed(self, completed_record):
        """Numeric strings in the score column are converted."""
        challenge = ChallengeMapper.to_domain({**completed_record, "score": "78.5"})

        assert challenge.score == 78.5

    def test_none_record(self):
        """None maps to None."""
        assert ChallengeMapper.to_domain(None) is None
        assert ChallengeMapper.to_database(None) is None

    def test_non_mapping_rejected(self):
        """Records must be mappings."""
        with pytest.raises(ChallengeValidationError):
            ChallengeMapper.to_domain(["not", "a", "record"])  # type: ignore[arg-type]

    def test_invalid_id_rejected(self, challenge_record):
        """Records that cannot form an entity raise a validation error."""
        with pytest.raises(ChallengeValidationError):
            ChallengeMapper.to_domain({**challenge_record, "id": None})


class TestCollections:
    """Collection helpers."""

    def test_skips_invalid_records(self, challenge_record):
        """Invalid records are skipped, valid ones kept."""
        records = [challenge_record, {**challenge_record, "id": "bad id"}, None]

        challenges = ChallengeMapper.to_domain_collection(records)

        assert [c.id for c in challenges] == [challenge_record["id"]]

    def test_to_database_collection(self, make_challenge):
        """Entities map to records in order."""
        records = ChallengeMapper.to_database_collection([make_challenge(), None])

        assert len(records) == 1
        assert records[0]["status"] == "pending"

    def test_none_collections(self):
        """None collections map to empty lists."""
        assert ChallengeMapper.to_domain_collection(None) == []
        assert ChallengeMapper.to_database_collection(None) == []
