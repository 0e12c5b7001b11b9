import pytest

from chronq.registration import ReaderRegistration


def test_register_creates_readers_dir_and_meta_path(tmp_path):
    reg = ReaderRegistration.register(tmp_path, "engine")
    assert (tmp_path / "readers").is_dir()
    assert reg.meta_path == tmp_path / "readers" / "engine.meta"
    assert reg.reader_name == "engine"


def test_register_rejects_empty_name(tmp_path):
    with pytest.raises(ValueError, match="reader name cannot be empty"):
        ReaderRegistration.register(tmp_path, "")


def test_close_removes_meta_file(tmp_path):
    reg = ReaderRegistration.register(tmp_path, "engine")
    reg.meta_path.write_bytes(b"meta")
    reg.close()
    assert not reg.meta_path.exists()


def test_close_without_file_is_harmless(tmp_path):
    reg = ReaderRegistration.register(tmp_path, "engine")
    reg.close()
    reg.close()
    assert not reg.meta_path.exists()
    assert (tmp_path / "readers").is_dir()


def test_context_manager_removes_meta_file(tmp_path):
    with ReaderRegistration.register(tmp_path, "fast") as reg:
        reg.meta_path.write_bytes(b"x")
        assert reg.meta_path.exists()
    assert not reg.meta_path.exists()