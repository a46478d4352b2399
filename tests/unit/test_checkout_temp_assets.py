from pathlib import Path

from backend.checkout import temp_assets


def test_stage_writes_under_upload_dir(temp_upload_dir):
    asset = temp_assets.stage(b"png-bytes", "host_0", filename="my photo.png", upload_id="checkout_abc")
    path = Path(asset.file_path)
    assert asset.field_name == "host_0"
    assert path.read_bytes() == b"png-bytes"
    assert path.parent == temp_upload_dir.resolve() / "checkout_abc"
    assert path.name.startswith("host_0_")
    assert path.name.endswith("my_photo.png")


def test_stage_generates_upload_dir_when_missing(temp_upload_dir):
    asset = temp_assets.stage(b"x", "venue_logo")
    assert Path(asset.file_path).parent.name.startswith("checkout_")


def test_sanitize_file_name():
    assert temp_assets.sanitize_file_name("../../etc/passwd") == "etc_passwd"
    assert temp_assets.sanitize_file_name("") == "file"


def test_read_staged_refuses_outside_paths(tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("nope")
    assert temp_assets.read_staged(str(outside)) is None


def test_read_staged_missing_file(temp_upload_dir):
    assert temp_assets.read_staged(str(temp_upload_dir / "gone.png")) is None


def test_cleanup_removes_files_and_empty_dirs(temp_upload_dir):
    a = temp_assets.stage(b"a", "dj_0", upload_id="sess1")
    b = temp_assets.stage(b"b", "sponsor_0", upload_id="sess1")
    temp_assets.cleanup([a.file_path, b.file_path])
    assert not Path(a.file_path).exists()
    assert not (temp_upload_dir / "sess1").exists()
    assert temp_upload_dir.exists()


def test_cleanup_keeps_non_empty_dirs(temp_upload_dir):
    a = temp_assets.stage(b"a", "dj_0", upload_id="sess2")
    b = temp_assets.stage(b"b", "dj_1", upload_id="sess2")
    temp_assets.cleanup([a.file_path])
    assert Path(b.file_path).exists()


def test_cleanup_is_idempotent(temp_upload_dir):
    a = temp_assets.stage(b"a", "dj_0", upload_id="sess3")
    temp_assets.cleanup([a.file_path])
    # second passage (rechargement navigateur): aucune erreur
    temp_assets.cleanup([a.file_path])
    temp_assets.cleanup([])


def test_cleanup_never_touches_outside_paths(tmp_path):
    outside = tmp_path / "keep.txt"
    outside.write_text("keep")
    temp_assets.cleanup([str(outside)])
    assert outside.exists()
