"""
Tests for the validation pipeline.
"""
import pytest

from agenda_validator.pipeline import (
    AgendaMetadataValidator, ValidationStep, load_metadata_file, parse_steps, validate_metadata,
)
from agenda_validator.exceptions import MetadataFileError
from conftest import (
    FIXED_NOW, OTHER_ADDRESS, TEST_FILE_PATH, TEST_PR_TITLE, TEST_SNAPSHOT_URL, TEST_TX_HASH,
    UPDATED_AT, FakeChainProvider, StubRemoteChecker, encode_agenda_params, make_agenda_created_log,
    make_metadata, write_metadata,
)

UPDATE_PR_TITLE = TEST_PR_TITLE.replace("[Agenda]", "[Agenda Update]")


class TestParseSteps:
    """Step selection."""

    def test_all(self):
        assert parse_steps("all") == list(ValidationStep)
        assert parse_steps(None) == list(ValidationStep)
        assert parse_steps("") == list(ValidationStep)

    def test_subset_keeps_pipeline_order(self):
        assert parse_steps("signature, schema") == [ValidationStep.SCHEMA, ValidationStep.SIGNATURE]
        assert parse_steps(["transaction", "pr-title"]) == [ValidationStep.PR_TITLE, ValidationStep.TRANSACTION]

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown validation step"):
            parse_steps("schema,bogus")


class TestValidateDocument:
    """Single-document runs."""

    def test_all_steps_pass(self, validator, metadata_document, fake_provider, remote_checker):
        verdict = validator.validate_document(metadata_document, TEST_FILE_PATH, TEST_PR_TITLE)

        assert verdict.valid, verdict.outcomes
        assert [o.step for o in verdict.outcomes] == list(ValidationStep)
        assert verdict.failed_step is None
        assert remote_checker.checked == [TEST_FILE_PATH]

    def test_update_passes(self, validator, remote_checker):
        remote_checker.existing.add("sepolia/agenda-101.json")
        document = make_metadata(updated_at=UPDATED_AT)

        verdict = validator.validate_document(document, TEST_FILE_PATH, UPDATE_PR_TITLE)

        assert verdict.valid, verdict.outcomes

    def test_stops_at_first_failure(self, validator, metadata_document, fake_provider):
        metadata_document["network"] = "mainnet"

        verdict = validator.validate_document(metadata_document, TEST_FILE_PATH, TEST_PR_TITLE)

        assert not verdict.valid
        assert verdict.failed_step == ValidationStep.FORMAT
        assert len(verdict.outcomes) == 2
        assert "Network mismatch" in verdict.outcomes[-1].reason

    def test_schema_failure(self, validator, metadata_document):
        del metadata_document["creator"]

        verdict = validator.validate_document(metadata_document, TEST_FILE_PATH, TEST_PR_TITLE)

        assert verdict.failed_step == ValidationStep.SCHEMA
        assert "creator" in verdict.outcomes[0].reason

    def test_schema_errors_fail_other_selected_steps(self, validator, metadata_document):
        metadata_document["id"] = "101"

        verdict = validator.validate_document(metadata_document, TEST_FILE_PATH, TEST_PR_TITLE, steps="signature")

        assert verdict.failed_step == ValidationStep.SIGNATURE
        assert "does not match the schema" in verdict.outcomes[0].reason

    def test_only_selected_steps_run(self, validator, metadata_document, remote_checker):
        verdict = validator.validate_document(metadata_document, TEST_FILE_PATH, "whatever", steps="schema,signature")

        assert verdict.valid
        assert [o.step for o in verdict.outcomes] == [ValidationStep.SCHEMA, ValidationStep.SIGNATURE]
        assert remote_checker.checked == []


class TestFormatStep:
    """File name and path consistency."""

    def test_id_mismatch(self, validator, metadata_document):
        verdict = validator.validate_document(
            metadata_document, "data/agendas/sepolia/agenda-102.json", TEST_PR_TITLE, steps="format"
        )
        assert not verdict.valid
        assert "ID mismatch" in verdict.outcomes[0].reason

    def test_bad_filename(self, validator, metadata_document):
        verdict = validator.validate_document(
            metadata_document, "data/agendas/sepolia/101.json", TEST_PR_TITLE, steps="format"
        )
        assert "agenda-<id>.json" in verdict.outcomes[0].reason

    def test_non_ascii_digit_id(self, validator, metadata_document):
        verdict = validator.validate_document(
            metadata_document, "data/agendas/sepolia/agenda-١٠١.json",
            "[Agenda] sepolia - ١٠١ - x", steps="format,pr-title",
        )
        assert not verdict.valid
        assert verdict.failed_step == ValidationStep.FORMAT

    def test_path_without_network(self, validator, metadata_document):
        verdict = validator.validate_document(metadata_document, "agenda-101.json", TEST_PR_TITLE, steps="format")
        assert "Could not extract network" in verdict.outcomes[0].reason


class TestPrTitleStep:
    """PR title consistency and remote existence."""

    def _run(self, validator, document, title):
        return validator.validate_document(document, TEST_FILE_PATH, title, steps="pr-title")

    def test_wrong_network_in_title(self, validator, metadata_document, remote_checker):
        verdict = self._run(validator, metadata_document, "[Agenda] mainnet - 101 - Upgrade")

        assert not verdict.valid
        assert "PR title format error" in verdict.outcomes[0].reason
        assert '"[Agenda] sepolia - 101 - <title>"' in verdict.outcomes[0].reason
        assert remote_checker.checked == []

    def test_wrong_id_in_title(self, validator, metadata_document):
        verdict = self._run(validator, metadata_document, "[Agenda] sepolia - 100 - Upgrade")
        assert "PR title format error" in verdict.outcomes[0].reason

    def test_non_ascii_digit_title(self, validator, metadata_document, remote_checker):
        verdict = self._run(validator, metadata_document, "[Agenda] sepolia - ١٠١ - Upgrade")
        assert not verdict.valid
        assert remote_checker.checked == []

    def test_unparseable_title(self, validator, metadata_document):
        verdict = self._run(validator, metadata_document, "Add agenda 101")
        assert not verdict.valid

    def test_title_text_mismatch_only_warns(self, validator, metadata_document, caplog):
        verdict = self._run(validator, metadata_document, "[Agenda] sepolia - 101 - Something else")

        assert verdict.valid
        assert "differs from metadata title" in caplog.text

    def test_create_title_for_update_document(self, validator):
        verdict = self._run(validator, make_metadata(updated_at=UPDATED_AT), TEST_PR_TITLE)
        assert "must not carry updatedAt" in verdict.outcomes[0].reason

    def test_update_title_for_create_document(self, validator, metadata_document):
        verdict = self._run(validator, metadata_document, UPDATE_PR_TITLE)
        assert "requires updatedAt" in verdict.outcomes[0].reason

    def test_create_when_file_exists(self, validator, metadata_document, remote_checker):
        remote_checker.existing.add("sepolia/agenda-101.json")
        verdict = self._run(validator, metadata_document, TEST_PR_TITLE)
        assert "already exists" in verdict.outcomes[0].reason

    def test_update_when_file_missing(self, validator):
        verdict = self._run(validator, make_metadata(updated_at=UPDATED_AT), UPDATE_PR_TITLE)
        assert "does not exist" in verdict.outcomes[0].reason


class TestTimeStep:
    """Signing window and update ordering."""

    def test_expired(self, validator):
        document = make_metadata(created_at="2025-01-15T10:00:00.000Z")
        verdict = validator.validate_document(document, TEST_FILE_PATH, TEST_PR_TITLE, steps="time")
        assert not verdict.valid
        assert "createdAt" in verdict.outcomes[0].reason

    def test_update_before_creation(self, validator):
        document = make_metadata(created_at="2025-01-15T11:50:00Z", updated_at="2025-01-15T11:40:00Z")
        verdict = validator.validate_document(document, TEST_FILE_PATH, UPDATE_PR_TITLE, steps="time")
        assert "updatedAt must be later than createdAt" in verdict.outcomes[0].reason

    def test_update_only_checks_updated_at_window(self, validator):
        document = make_metadata(created_at="2024-06-01T00:00:00Z", updated_at=UPDATED_AT)
        verdict = validator.validate_document(document, TEST_FILE_PATH, UPDATE_PR_TITLE, steps="time")
        assert verdict.valid


class TestTransactionStep:
    """On-chain failures surface as step failures."""

    def _run(self, provider, document=None):
        validator = AgendaMetadataValidator(
            remote_checker=StubRemoteChecker(),
            provider_factory=lambda network: provider,
            clock=lambda: FIXED_NOW,
        )
        return validator.validate_document(document or make_metadata(), TEST_FILE_PATH, TEST_PR_TITLE,
                                           steps="transaction")

    def test_missing_transaction(self):
        verdict = self._run(FakeChainProvider())
        assert "Transaction not found" in verdict.outcomes[0].reason

    def test_sender_mismatch(self):
        provider = FakeChainProvider()
        provider.add_agenda(sender=OTHER_ADDRESS, logs=[make_agenda_created_log()])
        verdict = self._run(provider)
        assert "Transaction sender does not match" in verdict.outcomes[0].reason

    def test_failure_links_to_explorer(self):
        verdict = self._run(FakeChainProvider())
        assert verdict.outcomes[0].reason.endswith(f"(see https://sepolia.etherscan.io/tx/{TEST_TX_HASH})")

    def test_memo_mismatch(self):
        provider = FakeChainProvider()
        provider.add_agenda(payload=encode_agenda_params(memo="https://other.example/2"))
        verdict = self._run(provider, make_metadata(snapshotUrl=TEST_SNAPSHOT_URL))
        assert "Memo does not match" in verdict.outcomes[0].reason

    def test_connection_error(self):
        class Unreachable:
            def get_transaction(self, transaction_hash):
                raise ConnectionError("node unreachable")

        verdict = self._run(Unreachable())
        assert "node unreachable" in verdict.outcomes[0].reason

    def test_unknown_network_provider(self):
        def factory(network):
            raise ValueError(f"Unknown network '{network}'")

        validator = AgendaMetadataValidator(remote_checker=StubRemoteChecker(), provider_factory=factory)
        with pytest.raises(ValueError):
            validator.validate_document(make_metadata(), TEST_FILE_PATH, TEST_PR_TITLE, steps="transaction")


class TestFiles:
    """File loading and multi-file runs."""

    def test_validate_file(self, validator, metadata_document, tmp_path):
        path = write_metadata(tmp_path, metadata_document)
        verdict = validator.validate_file(path, TEST_PR_TITLE)
        assert verdict.valid, verdict.outcomes

    def test_wrong_network_title_against_file(self, validator, metadata_document, tmp_path):
        path = write_metadata(tmp_path, metadata_document)
        verdict = validator.validate_file(path, "[Agenda] mainnet - 101 - Upgrade the seigniorage manager")
        assert verdict.failed_step == ValidationStep.PR_TITLE

    def test_unreadable_file(self, validator, tmp_path):
        verdict = validator.validate_file(str(tmp_path / "missing.json"), TEST_PR_TITLE)
        assert not verdict.valid
        assert verdict.outcomes == []
        assert "Failed to read" in verdict.error

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "agenda-1.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(MetadataFileError):
            load_metadata_file(str(path))

    def test_multiple_files_rejected(self, validator, metadata_document, tmp_path):
        first = write_metadata(tmp_path, metadata_document)
        second = write_metadata(tmp_path, make_metadata(agenda_id=102), agenda_id=102)

        verdicts = validator.validate_files([first, second], TEST_PR_TITLE)

        assert [v.file_path for v in verdicts] == [first, second]
        assert all(not v.valid for v in verdicts)
        assert "Exactly one" in verdicts[0].error

    def test_multiple_files_allowed(self, validator, metadata_document, tmp_path):
        first = write_metadata(tmp_path, metadata_document)
        second = write_metadata(tmp_path, make_metadata(agenda_id=102), agenda_id=102)

        verdicts = validator.validate_files([first, second], TEST_PR_TITLE, steps="schema,format",
                                            allow_multiple=True)

        assert [v.file_path for v in verdicts] == [first, second]
        assert all(v.valid for v in verdicts)

    def test_validate_files_unknown_step(self, validator):
        with pytest.raises(ValueError):
            validator.validate_files(["a.json"], TEST_PR_TITLE, steps="nope")

    def test_validate_metadata_helper(self, metadata_document, fake_provider, tmp_path):
        path = write_metadata(tmp_path, metadata_document)
        verdict = validate_metadata(
            path, TEST_PR_TITLE,
            remote_checker=StubRemoteChecker(),
            provider_factory=lambda network: fake_provider,
            clock=lambda: FIXED_NOW,
        )
        assert verdict.valid, verdict.outcomes
