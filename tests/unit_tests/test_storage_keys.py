import re

from filevault.services.storage_keys import build_storage_key, format_file_size


def test__build_storage_key__layout():
    key = build_storage_key("user-1", "note.txt", now_ms=1700000000123, token="abc123")
    assert key == "user-1/1700000000123-abc123.txt"


def test__build_storage_key__random_parts_differ():
    first = build_storage_key("user-1", "photo.JPG")
    second = build_storage_key("user-1", "photo.JPG")
    assert first != second
    assert re.fullmatch(r"user-1/\d+-[0-9a-f]{16}\.JPG", first)


def test__build_storage_key__scoped_by_user():
    a = build_storage_key("user-a", "x.pdf", now_ms=1, token="t")
    b = build_storage_key("user-b", "x.pdf", now_ms=1, token="t")
    assert a != b
    assert a.startswith("user-a/")


def test__build_storage_key__drops_missing_or_odd_extension():
    assert build_storage_key("u", "Makefile", now_ms=1, token="t") == "u/1-t"
    assert build_storage_key("u", "weird.ta r", now_ms=1, token="t") == "u/1-t"
    assert build_storage_key("u", "../../etc/passwd.sh", now_ms=1, token="t") == "u/1-t.sh"


def test__format_file_size():
    assert format_file_size(0) == "0 Bytes"
    assert format_file_size(10) == "10 Bytes"
    assert format_file_size(1024) == "1 KB"
    assert format_file_size(1536) == "1.5 KB"
    assert format_file_size(1234567) == "1.18 MB"
    assert format_file_size(5 * 1024 ** 3) == "5 GB"
    assert format_file_size(3 * 1024 ** 4) == "3 TB"
