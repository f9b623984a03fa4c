"""Tests for the single-pass package validator."""

import gzip
import io
import os
import tarfile

import pytest

from computepkg.errors import (
    CloseError,
    EntryRejected,
    MissingRequiredFileError,
    OpenError,
    ReadError,
    UnarchiveError,
    ValidatorError,
)
from computepkg.validation import (
    DenyEntries,
    PackageValidator,
    ValidationStatus,
    validate_package,
)

from helpers import MANIFEST, VALID_ENTRIES, WASM, build_tar


class TestScenarios:
    """End-to-end validation scenarios."""

    def test_manifest_only_reports_missing_wasm(self, make_package):
        path = make_package([("fastly.toml", MANIFEST)])

        outcome = PackageValidator().validate(path)

        assert outcome.status == ValidationStatus.FAIL
        assert isinstance(outcome.error, MissingRequiredFileError)
        assert outcome.error.missing == ("main.wasm",)
        assert outcome.exit_code == 1

    def test_required_plus_extra_entries_succeeds(self, valid_package):
        outcome = PackageValidator().validate(valid_package)

        assert outcome.ok
        assert outcome.error is None
        assert outcome.entries_read == 3
        assert outcome.observed == ["fastly.toml", "main.wasm"]
        assert outcome.exit_code == 0

    def test_nested_wasm_does_not_count(self, make_package):
        path = make_package([("subdir/main.wasm", WASM), ("fastly.toml", MANIFEST)])

        outcome = PackageValidator().validate(path)

        assert isinstance(outcome.error, MissingRequiredFileError)
        assert outcome.error.missing == ("main.wasm",)

    def test_directory_named_like_required_file_does_not_count(self, make_package):
        path = make_package([("fastly.toml", MANIFEST), ("main.wasm/", b"")])

        outcome = PackageValidator().validate(path)

        assert isinstance(outcome.error, MissingRequiredFileError)
        assert outcome.error.missing == ("main.wasm",)
        assert outcome.observed == ["fastly.toml"]

    def test_deny_hook_without_denied_entry(self, valid_package):
        outcome = PackageValidator(entry_validator=DenyEntries(["secret.key"])).validate(valid_package)
        assert outcome.ok

    def test_deny_hook_with_denied_entry(self, make_package):
        path = make_package([*VALID_ENTRIES, ("secret.key", b"hunter2")])

        outcome = PackageValidator(entry_validator=DenyEntries(["secret.key"])).validate(path)

        assert isinstance(outcome.error, ValidatorError)
        assert outcome.error.entry_name == "secret.key"
        assert outcome.error.validator == "deny_entries"

    def test_missing_path(self, tmp_path):
        outcome = PackageValidator().validate(tmp_path / "missing.tar.gz")

        assert isinstance(outcome.error, OpenError)
        assert outcome.entries_read == 0
        assert outcome.observed == []


class TestRequiredEntries:
    """Required-entry satisfaction properties."""

    @pytest.mark.parametrize("entries", [
        [("main.wasm", WASM), ("fastly.toml", MANIFEST)],
        [("fastly.toml", MANIFEST), ("x", b"1"), ("main.wasm", WASM), ("y", b"2")],
        [("bin/", b""), ("main.wasm", WASM), ("fastly.toml", MANIFEST)],
    ])
    def test_order_and_extras_do_not_matter(self, make_package, entries):
        assert PackageValidator().validate(make_package(entries)).ok

    def test_both_missing_reported_sorted(self, make_package):
        path = make_package([("README.md", b"hi")])

        outcome = PackageValidator().validate(path)

        assert outcome.error.missing == ("fastly.toml", "main.wasm")

    def test_empty_archive(self, make_package):
        outcome = PackageValidator().validate(make_package([]))
        assert isinstance(outcome.error, MissingRequiredFileError)

    def test_empty_required_name_rejected_up_front(self):
        with pytest.raises(ValueError, match="non-empty"):
            PackageValidator(required_files=["main.wasm", ""])

    def test_custom_required_files(self, make_package):
        path = make_package([("manifest.json", b"{}")])

        assert PackageValidator(required_files=["manifest.json"]).validate(path).ok
        outcome = PackageValidator().validate(path)
        assert outcome.error.missing == ("fastly.toml", "main.wasm")


class TestEntryValidatorHook:
    """Entry validator invocation and abort semantics."""

    def test_hook_sees_every_entry(self, valid_package):
        seen = []

        PackageValidator(entry_validator=lambda entry: seen.append(entry.name)).validate(valid_package)

        assert seen == ["fastly.toml", "main.wasm", "README.md"]

    def test_rejection_stops_stream(self, make_package):
        path = make_package([
            ("a", b"1"), ("b", b"2"), ("c", b"3"), *VALID_ENTRIES,
        ])
        seen = []

        def reject_b(entry):
            seen.append(entry.name)
            if entry.name == "b":
                raise EntryRejected("b is not allowed")

        outcome = PackageValidator(entry_validator=reject_b).validate(path)

        assert seen == ["a", "b"]
        assert outcome.entries_read == 2
        assert isinstance(outcome.error, ValidatorError)
        assert outcome.error.validator == "reject_b"
        assert isinstance(outcome.error.cause, EntryRejected)

    def test_rejection_wins_over_missing_files(self, make_package):
        path = make_package([("secret.key", b"x")])

        outcome = PackageValidator(entry_validator=DenyEntries(["secret.key"])).validate(path)

        assert isinstance(outcome.error, ValidatorError)

    def test_any_exception_is_a_rejection(self, valid_package):
        def broken(entry):
            raise KeyError(entry.name)

        outcome = PackageValidator(entry_validator=broken).validate(valid_package)

        assert isinstance(outcome.error, ValidatorError)
        assert outcome.error.entry_name == "fastly.toml"

    def test_accepting_hook_matches_no_hook(self, make_package):
        for entries in ([("fastly.toml", MANIFEST)], [*VALID_ENTRIES, ("extra", b"1")]):
            path = make_package(entries)
            plain = PackageValidator().validate(path)
            hooked = PackageValidator(entry_validator=lambda entry: None).validate(path)

            assert plain.status == hooked.status
            assert plain.entries_read == hooked.entries_read
            assert plain.observed == hooked.observed
            assert type(plain.error) is type(hooked.error)

    def test_read_error_inside_hook_passes_through(self, tmp_path):
        data = gzip.compress(build_tar([("fastly.toml", MANIFEST), ("main.wasm", os.urandom(256 * 1024))]))
        path = tmp_path / "package.tar.gz"
        path.write_bytes(data[: len(data) // 2])

        def read_all(entry):
            for _ in entry.iter_chunks():
                pass

        outcome = PackageValidator(entry_validator=read_all).validate(path)

        assert isinstance(outcome.error, ReadError)


class TestFailureKinds:
    """Open, unarchive, read and close failures."""

    def test_not_an_archive(self, tmp_path):
        path = tmp_path / "package.tar.gz"
        path.write_text("not an archive", encoding="utf-8")

        outcome = PackageValidator().validate(path)

        assert isinstance(outcome.error, UnarchiveError)
        assert outcome.observed == []

    def test_truncated_archive(self, tmp_path):
        data = gzip.compress(build_tar([("fastly.toml", MANIFEST), ("main.wasm", os.urandom(256 * 1024))]))
        path = tmp_path / "package.tar.gz"
        path.write_bytes(data[: len(data) // 2])

        outcome = PackageValidator().validate(path)

        assert isinstance(outcome.error, ReadError)

    def test_close_error(self, valid_package, monkeypatch):
        class FailingReader(io.BytesIO):
            failed = False

            def close(self):
                if not self.failed:
                    self.failed = True
                    raise OSError("device busy")
                super().close()

        monkeypatch.setattr(tarfile.TarFile, "extractfile", lambda self, member: FailingReader(b""))

        outcome = PackageValidator().validate(valid_package)

        assert isinstance(outcome.error, CloseError)
        assert outcome.entries_read == 1


class TestValidatePackage:
    """Test the raising convenience wrapper."""

    def test_success_returns_outcome(self, valid_package):
        outcome = validate_package(valid_package)
        assert outcome.ok

    def test_failure_raises_typed_error(self, make_package):
        path = make_package([("fastly.toml", MANIFEST)])

        with pytest.raises(MissingRequiredFileError) as exc_info:
            validate_package(path)

        assert exc_info.value.archive_path == path

    def test_missing_path_raises_open_error(self, tmp_path):
        with pytest.raises(OpenError):
            validate_package(tmp_path / "missing.tar.gz")

    def test_idempotent(self, valid_package, make_package):
        assert validate_package(valid_package).to_dict() == validate_package(valid_package).to_dict()

        broken = make_package([("fastly.toml", MANIFEST)], filename="broken.tar.gz")
        first = PackageValidator().validate(broken).to_dict()
        second = PackageValidator().validate(broken).to_dict()
        assert first == second

    def test_to_dict(self, make_package):
        path = make_package([("fastly.toml", MANIFEST)])

        data = PackageValidator().validate(path).to_dict()

        assert data["status"] == "fail"
        assert data["exit_code"] == 1
        assert data["entries_read"] == 1
        assert data["error"]["kind"] == "missing_required_file"
        assert data["error"]["missing"] == ["main.wasm"]
