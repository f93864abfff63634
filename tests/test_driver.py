"""Tests for ObjectStorageDriver — folder semantics over the flat store."""

from __future__ import annotations

import hashlib
import io
import os
import re
import stat
from pathlib import Path

import pytest

from bucketfs.fs.driver import DEFAULT_FILE_PROPERTIES, ObjectStorageDriver
from bucketfs.fs.exceptions import (
    FilterError,
    FolderDoesNotExistError,
    InvalidPropertyError,
    PathNotFoundError,
    StorageError,
)
from bucketfs.fs.filters import (
    EXCLUDE,
    INCLUDE,
    DirectoryItem,
    FilterResult,
    exclude_hidden,
    exclude_names,
    include_names,
)
from bucketfs.fs.utils import FolderRole

from .conftest import BUCKET, BrokenListingStore, FailingCopyStore

# ---------------------------------------------------------------------------
# Identifiers
# ---------------------------------------------------------------------------


class TestIdentifiers:
    def test_root(self, driver: ObjectStorageDriver):
        assert driver.get_root_level_folder() == "/"

    def test_get_file_in_folder(self, driver: ObjectStorageDriver):
        assert driver.get_file_in_folder("a.txt", "/docs") == "/docs/a.txt"
        assert driver.get_file_in_folder("a.txt", "/") == "/a.txt"

    def test_get_folder_in_folder(self, driver: ObjectStorageDriver):
        assert driver.get_folder_in_folder("sub", "/docs/") == "/docs/sub/"

    @pytest.mark.parametrize(
        ("identifier", "parent"),
        [
            pytest.param("/docs/a.txt", "/docs/", id="nested"),
            pytest.param("/a.txt", "/", id="root-file"),
            pytest.param("/docs/sub/", "/docs/", id="folder"),
        ],
    )
    def test_parent(self, driver: ObjectStorageDriver, identifier: str, parent: str):
        assert driver.get_parent_folder_identifier_of_identifier(identifier) == parent

    def test_sanitize_file_name(self, driver: ObjectStorageDriver):
        assert driver.sanitize_file_name("//a//b.txt/") == "a/b.txt"

    def test_role(self, driver: ObjectStorageDriver):
        assert driver.get_role("/docs/_recycler_/") is FolderRole.RECYCLER
        assert driver.get_role("/docs/") is FolderRole.DEFAULT

    @pytest.mark.parametrize(
        ("folder", "identifier", "expected"),
        [
            pytest.param("/a/", "/a/b.txt", True, id="direct-child"),
            pytest.param("/a", "/a/b/c.txt", True, id="unnormalized-folder"),
            pytest.param("a/", "a/b.txt", True, id="keys"),
            pytest.param("/a", "/ab.txt", False, id="sibling-with-shared-prefix"),
            pytest.param("/", "/anything", True, id="root"),
            pytest.param("/a/", None, False, id="non-string"),
        ],
    )
    def test_is_within(self, driver: ObjectStorageDriver, folder, identifier, expected: bool):
        assert driver.is_within(folder, identifier) is expected

    def test_hash_is_of_identifier(self, driver: ObjectStorageDriver):
        assert driver.hash("/a.txt") == hashlib.sha1(b"/a.txt").hexdigest()
        assert driver.hash("a.txt", "md5") == hashlib.md5(b"/a.txt").hexdigest()

    def test_public_url(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/docs/a.txt", b"x")
        assert driver.get_public_url("/docs/a.txt") == "https://cdn.example.com/docs/a.txt"
        assert driver.get_public_url("/docs/missing.txt") == ""

    def test_permissions(self, driver: ObjectStorageDriver):
        assert driver.get_permissions("/anything") == {"r": True, "w": True}


# ---------------------------------------------------------------------------
# Create & content
# ---------------------------------------------------------------------------


class TestCreate:
    def test_create_folder(self, driver: ObjectStorageDriver):
        assert driver.create_folder("docs") == "/docs/"
        assert driver.folder_exists("/docs/")
        assert driver.create_folder("sub", "/docs/") == "/docs/sub/"
        assert driver.folder_exists_in_folder("sub", "/docs/")

    def test_create_folder_missing_parent(self, driver: ObjectStorageDriver):
        with pytest.raises(FolderDoesNotExistError):
            driver.create_folder("x", "/missing/")
        assert driver.folder_exists("/missing/x/") is False

    @pytest.mark.parametrize("name", ["/", "", "//"])
    def test_root_folder_refused(self, driver: ObjectStorageDriver, store, name: str):
        with pytest.raises(ValueError, match="root"):
            driver.create_folder(name)
        assert store.exists("") is False

    def test_create_folder_recursive(self, driver: ObjectStorageDriver):
        assert driver.create_folder("x", "/missing/deep/", recursive=True) == "/missing/deep/x/"
        assert driver.folder_exists("/missing/")

    def test_create_file(self, driver: ObjectStorageDriver):
        assert driver.create_file("a.txt", "/docs/") == "/docs/a.txt"
        assert driver.file_exists("/docs/a.txt")
        assert driver.file_exists_in_folder("a.txt", "/docs/")
        assert driver.get_file_contents("/docs/a.txt") == b""

    def test_create_file_invalid_name(self, driver: ObjectStorageDriver):
        with pytest.raises(ValueError, match="control character"):
            driver.create_file("bad\x01.txt", "/")

    def test_default_folder_created_on_demand(self, driver: ObjectStorageDriver):
        assert driver.folder_exists("/user_upload/") is False
        assert driver.get_default_folder() == "/user_upload/"
        assert driver.folder_exists("/user_upload/")


class TestContents:
    def test_round_trip(self, driver: ObjectStorageDriver):
        assert driver.set_file_contents("/docs/a.txt", "hello") == 5
        assert driver.get_file_contents("/docs/a.txt") == b"hello"

    def test_overwrite(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.bin", b"\x00\x01")
        driver.set_file_contents("/a.bin", b"\x02")
        assert driver.get_file_contents("a.bin") == b"\x02"

    def test_get_missing(self, driver: ObjectStorageDriver):
        with pytest.raises(PathNotFoundError):
            driver.get_file_contents("/nope.txt")

    def test_dump_file_contents(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"dumped")
        out = io.BytesIO()
        driver.dump_file_contents("/a.txt", out)
        assert out.getvalue() == b"dumped"

    def test_dump_missing_writes_nothing(self, driver: ObjectStorageDriver):
        out = io.BytesIO()
        driver.dump_file_contents("/nope.txt", out)
        assert out.getvalue() == b""

    def test_add_file(self, driver: ObjectStorageDriver, tmp_path: Path):
        local = tmp_path / "upload.txt"
        local.write_bytes(b"uploaded in chunks")
        identifier = driver.add_file(local, "/docs/")
        assert identifier == "/docs/upload.txt"
        assert driver.get_file_contents(identifier) == b"uploaded in chunks"
        assert not local.exists()

    def test_add_file_rename_and_keep_original(self, driver: ObjectStorageDriver, tmp_path: Path):
        local = tmp_path / "upload.txt"
        local.write_bytes(b"x")
        identifier = driver.add_file(local, "/docs/", "renamed.txt", remove_original=False)
        assert identifier == "/docs/renamed.txt"
        assert local.exists()

    def test_add_empty_file(self, driver: ObjectStorageDriver, tmp_path: Path):
        local = tmp_path / "empty.txt"
        local.write_bytes(b"")
        driver.add_file(local, "/")
        assert driver.file_exists("/empty.txt")

    def test_add_file_updates_listing(self, driver: ObjectStorageDriver, tmp_path: Path):
        driver.set_file_contents("/docs/a.txt", b"a")
        assert driver.get_files_in_folder("/docs/") == ["/docs/a.txt"]

        local = tmp_path / "b.txt"
        local.write_bytes(b"b")
        driver.add_file(local, "/docs/")

        assert driver.get_files_in_folder("/docs/") == ["/docs/a.txt", "/docs/b.txt"]

    def test_replace_file(self, driver: ObjectStorageDriver, tmp_path: Path):
        driver.set_file_contents("/docs/a.txt", b"old")
        local = tmp_path / "new.txt"
        local.write_bytes(b"new contents")
        assert driver.replace_file("/docs/a.txt", local) is True
        assert driver.get_file_contents("/docs/a.txt") == b"new contents"
        assert driver.get_files_in_folder("/docs/") == ["/docs/a.txt"]


# ---------------------------------------------------------------------------
# Local processing copies
# ---------------------------------------------------------------------------


class TestLocalCopies:
    def test_missing_file(self, driver: ObjectStorageDriver):
        assert driver.get_file_for_local_processing("/nope.txt") == ""

    def test_copy_is_removed_on_close(self, store, tmp_path: Path):
        driver = ObjectStorageDriver(store, temp_dir=tmp_path)
        driver.set_file_contents("/a.txt", b"local")
        path = driver.get_file_for_local_processing("/a.txt")

        assert Path(path).read_bytes() == b"local"
        assert Path(path).parent == tmp_path
        assert path.endswith(".txt")

        driver.close()
        assert not Path(path).exists()

    def test_read_only_copy(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"x")
        path = driver.get_file_for_local_processing("/a.txt", writable=False)
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o444

    def test_local_copy_scope(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"scoped")
        with driver.local_copy("/a.txt") as path:
            assert Path(path).read_bytes() == b"scoped"
        assert not Path(path).exists()

    def test_local_copy_removed_on_error(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"x")
        with pytest.raises(RuntimeError), driver.local_copy("/a.txt") as path:
            raise RuntimeError("processing failed")
        assert not Path(path).exists()

    def test_local_copy_missing(self, driver: ObjectStorageDriver):
        with pytest.raises(PathNotFoundError), driver.local_copy("/nope.txt"):
            pass


# ---------------------------------------------------------------------------
# Information
# ---------------------------------------------------------------------------


class TestFileInfo:
    def test_default_properties(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/docs/a.txt", b"hello")
        info = driver.get_file_info_by_identifier("/docs/a.txt")

        assert set(info) == set(DEFAULT_FILE_PROPERTIES)
        assert info["size"] == 5
        assert info["name"] == "a.txt"
        assert info["extension"] == "txt"
        assert info["mimetype"] == "text/plain"
        assert info["identifier"] == "/docs/a.txt"
        assert info["storage"] == BUCKET
        assert info["identifier_hash"] == hashlib.sha1(b"/docs/a.txt").hexdigest()
        assert info["folder_hash"] == hashlib.sha1(b"/docs/").hexdigest()
        assert isinstance(info["mtime"], int)
        assert info["atime"] == info["mtime"]

    def test_selected_properties(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"x")
        assert driver.get_file_info_by_identifier("/a.txt", ["size", "name"]) == {
            "size": 1,
            "name": "a.txt",
        }

    def test_unknown_property(self, driver: ObjectStorageDriver):
        driver.set_file_contents("/a.txt", b"x")
        with pytest.raises(InvalidPropertyError, match='The information "colour" is not available.'):
            driver.get_file_info_by_identifier("/a.txt", ["colour"])

    def test_folder_and_missing_give_empty_record(self, driver: ObjectStorageDriver, populate):
        populate("docs/")
        assert driver.get_file_info_by_identifier("/docs/") == {}
        assert driver.get_file_info_by_identifier("/nope.txt") == {}


class TestFolderInfo:
    def test_root(self, driver: ObjectStorageDriver):
        info = driver.get_folder_info_by_identifier("/")
        assert info["identifier"] == "/"
        assert info["storage"] == BUCKET

    def test_marker_folder(self, driver: ObjectStorageDriver):
        driver.create_folder("docs")
        info = driver.get_folder_info_by_identifier("/docs")
        assert info["identifier"] == "/docs/"
        assert info["name"] == "docs"
        assert isinstance(info["ctime"], int)

    def test_implied_folder(self, driver: ObjectStorageDriver, populate):
        populate("implied/a.txt")
        assert driver.get_folder_info_by_identifier("/implied/")["name"] == "implied"

    def test_missing(self, driver: ObjectStorageDriver):
        with pytest.raises(FolderDoesNotExistError):
            driver.get_folder_info_by_identifier("/nope/")


# ---------------------------------------------------------------------------
# Listings
# ---------------------------------------------------------------------------


class TestListings:
    @pytest.fixture
    def five_files(self, populate) -> None:
        populate("docs/", *(f"docs/f{i}.txt" for i in range(5)), "docs/sub/x.txt", "docs/.hidden")

    def test_files_in_folder(self, driver: ObjectStorageDriver, populate):
        populate("docs/", "docs/a.txt", "docs/sub/b.txt")
        assert driver.get_files_in_folder("/docs/") == ["/docs/a.txt"]
        assert driver.get_files_in_folder("/docs/", recursive=True) == [
            "/docs/a.txt",
            "/docs/sub/b.txt",
        ]

    def test_folders_in_folder(self, driver: ObjectStorageDriver, populate):
        populate("a/", "b/c.txt", "top.txt")
        assert driver.get_folders_in_folder("/") == ["/a/", "/b/"]

    def test_start_and_limit(self, driver: ObjectStorageDriver, five_files):
        assert driver.get_files_in_folder(
            "/docs/", 1, 2, filename_filter_callbacks=[exclude_hidden],
        ) == ["/docs/f1.txt", "/docs/f2.txt"]

    def test_start_counts_filtered_items_only(self, driver: ObjectStorageDriver, five_files):
        # ".hidden" sorts first; skipping it must not consume the offset
        files = driver.get_files_in_folder("/docs/", 1, 0, filename_filter_callbacks=[exclude_hidden])
        assert files == ["/docs/f1.txt", "/docs/f2.txt", "/docs/f3.txt", "/docs/f4.txt"]

    def test_interrupted_listing_returns_partial_result(self, engine, populate, tmp_path: Path):
        populate("p/a", "p/b", "p/c", "p/d")
        store = BrokenListingStore(engine, BUCKET, page_size=2)
        with ObjectStorageDriver(store, temp_dir=tmp_path) as driver:
            assert driver.get_files_in_folder("/p/") == ["/p/a", "/p/b"]

    def test_storage_error_yields_empty_listing(self, driver: ObjectStorageDriver, monkeypatch, five_files):
        def _unavailable(*args, **kwargs):
            raise StorageError("bucket unreachable")

        monkeypatch.setattr(driver.catalog, "retrieve_file_and_folders_in_path", _unavailable)
        assert driver.get_directory_item_list("/docs/") == []

    def test_start_past_end(self, driver: ObjectStorageDriver, five_files):
        assert driver.get_files_in_folder("/docs/", 50) == []

    def test_counts(self, driver: ObjectStorageDriver, five_files):
        assert driver.count_files_in_folder("/docs/") == 6
        assert driver.count_files_in_folder("/docs/", filename_filter_callbacks=[exclude_hidden]) == 5
        assert driver.count_files_in_folder("/docs/", recursive=True) == 7
        assert driver.count_folders_in_folder("/docs/") == 1

    def test_include_and_exclude_filters(self, driver: ObjectStorageDriver, five_files):
        files = driver.get_files_in_folder(
            "/docs/", filename_filter_callbacks=[include_names("f*.txt"), exclude_names("f3.*")],
        )
        assert files == ["/docs/f0.txt", "/docs/f1.txt", "/docs/f2.txt", "/docs/f4.txt"]

    def test_filter_receives_item(self, driver: ObjectStorageDriver, populate):
        populate("docs/a.txt")
        seen: list[DirectoryItem] = []

        def _record(item: DirectoryItem) -> FilterResult:
            seen.append(item)
            return INCLUDE

        driver.get_files_in_folder("/docs/", filename_filter_callbacks=[_record])
        assert seen == [DirectoryItem("a.txt", "/docs/a.txt", "/docs/")]

    def test_exclude_stops_later_filters(self, driver: ObjectStorageDriver, populate):
        populate("docs/a.txt")

        def _boom(item: DirectoryItem) -> FilterResult:
            raise AssertionError("filter after EXCLUDE was called")

        assert driver.get_files_in_folder(
            "/docs/", filename_filter_callbacks=[lambda item: EXCLUDE, _boom],
        ) == []

    def test_failure_aborts_listing(self, driver: ObjectStorageDriver, five_files):
        def _fail(item: DirectoryItem) -> FilterResult:
            return FilterResult.failure("index unavailable")

        with pytest.raises(FilterError, match="index unavailable"):
            driver.get_files_in_folder("/docs/", filename_filter_callbacks=[_fail])

    def test_non_result_value_aborts_listing(self, driver: ObjectStorageDriver, five_files):
        with pytest.raises(FilterError):
            driver.get_files_in_folder("/docs/", filename_filter_callbacks=[lambda item: True])

    def test_sort_by_name(self, driver: ObjectStorageDriver, populate):
        populate("d/b.txt", "d/A.txt", "d/c.txt")
        assert driver.get_files_in_folder("/d/", sort="name") == ["/d/A.txt", "/d/b.txt", "/d/c.txt"]
        assert driver.get_files_in_folder("/d/", sort="name", sort_rev=True) == [
            "/d/c.txt",
            "/d/b.txt",
            "/d/A.txt",
        ]

    def test_is_folder_empty(self, driver: ObjectStorageDriver, populate):
        populate("empty/", "full/", "full/a.txt")
        assert driver.is_folder_empty("/empty/") is True
        assert driver.is_folder_empty("/full/") is False
        assert driver.is_folder_empty("/missing/") is False


# ---------------------------------------------------------------------------
# Delete & recycle
# ---------------------------------------------------------------------------

RECYCLED_NAME = re.compile(r"^/_recycler_/\d{20}_report\.txt$")


class TestDelete:
    def test_delete_file_without_recycler(self, driver: ObjectStorageDriver, populate):
        populate("a.txt")
        assert driver.delete_file("/a.txt") is True
        assert driver.file_exists("/a.txt") is False

    def test_empty_folder_deleted(self, driver: ObjectStorageDriver, populate):
        populate("empty/")
        assert driver.delete_folder("/empty/") is True
        assert driver.folder_exists("/empty/") is False

    def test_non_empty_folder_refused(self, driver: ObjectStorageDriver, populate):
        populate("full/", "full/a.txt")
        assert driver.delete_folder("/full/") is False
        assert driver.file_exists("/full/a.txt")

    def test_recursive_delete(self, driver: ObjectStorageDriver, populate):
        populate("full/", "full/a.txt", "full/sub/b.txt")
        assert driver.delete_folder("/full/", delete_recursively=True) is True
        assert driver.folder_exists("/full/") is False


class TestRecycle:
    def test_file_goes_to_recycler(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "docs/report.txt")
        assert driver.delete_file("/docs/report.txt") is True
        assert driver.file_exists("/docs/report.txt") is False
        assert driver.get_file_contents("/_recycler_/report.txt") == b"content of docs/report.txt"

    def test_name_collision_gets_timestamp(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "_recycler_/report.txt", "docs/report.txt")
        driver.delete_file("/docs/report.txt")

        recycled = driver.get_files_in_folder("/_recycler_/")
        assert "/_recycler_/report.txt" in recycled
        stamped = [i for i in recycled if RECYCLED_NAME.match(i)]
        assert len(stamped) == 1

    def test_nearest_recycler_wins(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "docs/_recycler_/", "docs/sub/x.txt")
        assert driver.get_recycle_directory("docs/sub/x.txt") == "docs/_recycler_/"
        driver.delete_file("/docs/sub/x.txt")
        assert driver.file_exists("/docs/_recycler_/x.txt")

    def test_no_recycler(self, driver: ObjectStorageDriver, populate):
        populate("docs/x.txt")
        assert driver.get_recycle_directory("docs/x.txt") == ""

    def test_folder_recycler_not_used_for_itself(self, driver: ObjectStorageDriver, populate):
        populate("docs/", "docs/_recycler_/")
        assert driver.get_recycle_directory("docs/") == ""

    def test_delete_inside_recycler_is_permanent(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "_recycler_/old.txt")
        assert driver.delete_file("/_recycler_/old.txt") is True
        assert driver.get_files_in_folder("/_recycler_/") == []

    def test_permanent_bypasses_recycler(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "a.txt")
        driver.delete_file("/a.txt", permanent=True)
        assert driver.file_exists("/_recycler_/a.txt") is False
        assert driver.file_exists("/a.txt") is False

    def test_folder_goes_to_recycler(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "docs/", "docs/a.txt")
        assert driver.delete_folder("/docs/") is True
        assert driver.folder_exists("/docs/") is False
        assert driver.file_exists("/_recycler_/docs/a.txt")

    def test_recycler_itself_is_deleted(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "_recycler_/a.txt")
        assert driver.delete_folder("/_recycler_/", delete_recursively=True) is True
        assert driver.folder_exists("/_recycler_/") is False

    def test_recycle_returns_mapping(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "a.txt")
        assert driver.recycle_file_or_folder("a.txt", "_recycler_/") == {
            "/a.txt": "/_recycler_/a.txt",
        }

    def test_recycle_missing_source(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/")
        assert driver.recycle_file_or_folder("ghost.txt", "_recycler_/") == {}

    def test_file_shadowed_by_folder_recycles_the_file(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "x", "x/child.txt")

        assert driver.delete_file("/x") is True

        assert driver.file_exists("/x") is False
        assert driver.file_exists("/x/child.txt")
        assert driver.get_files_in_folder("/_recycler_/") == ["/_recycler_/x"]

    def test_folder_shadowing_file_recycles_the_folder(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "x", "x/child.txt")

        assert driver.delete_folder("/x/") is True

        assert driver.file_exists("/x")
        assert driver.folder_exists("/x/") is False
        assert driver.get_files_in_folder("/_recycler_/", recursive=True) == [
            "/_recycler_/x/child.txt",
        ]

    def test_recycled_file_does_not_collide_with_folder(self, driver: ObjectStorageDriver, populate):
        populate("_recycler_/", "_recycler_/report.txt/old.txt", "report.txt")
        assert driver.recycle_file_or_folder("report.txt", "_recycler_/") == {
            "/report.txt": "/_recycler_/report.txt",
        }


# ---------------------------------------------------------------------------
# Rename, move & copy
# ---------------------------------------------------------------------------


class TestMoveCopy:
    @pytest.fixture
    def tree(self, populate) -> None:
        populate("a/", "a/f1.txt", "a/sub/f2.txt", "b/")

    def test_rename_file(self, driver: ObjectStorageDriver, populate):
        populate("docs/a.txt")
        assert driver.rename_file("/docs/a.txt", "b.txt") == "/docs/b.txt"
        assert driver.file_exists("/docs/a.txt") is False
        assert driver.file_exists("/docs/b.txt")

    def test_move_file(self, driver: ObjectStorageDriver, populate):
        populate("docs/a.txt")
        assert driver.move_file_within_storage("/docs/a.txt", "/other/", "z.txt") == "/other/z.txt"
        assert driver.get_file_contents("/other/z.txt") == b"content of docs/a.txt"
        assert driver.file_exists("/docs/a.txt") is False

    def test_copy_file(self, driver: ObjectStorageDriver, populate):
        populate("docs/a.txt")
        assert driver.copy_file_within_storage("/docs/a.txt", "/other/", "a.txt") == "/other/a.txt"
        assert driver.file_exists("/docs/a.txt")
        assert driver.file_exists("/other/a.txt")

    def test_move_folder_maps_every_object(self, driver: ObjectStorageDriver, tree):
        result = driver.move_folder_within_storage("/a/", "/b/", "a2")

        assert result.success is True
        assert result.mapping == {
            "/a/": "/b/a2/",
            "/a/f1.txt": "/b/a2/f1.txt",
            "/a/sub/f2.txt": "/b/a2/sub/f2.txt",
        }
        assert driver.folder_exists("/a/") is False
        assert driver.get_file_contents("/b/a2/sub/f2.txt") == b"content of a/sub/f2.txt"

    def test_copy_folder(self, driver: ObjectStorageDriver, tree):
        result = driver.copy_folder_within_storage("/a/", "/", "copy")
        assert result.success is True
        assert set(result.mapping.values()) == {"/copy/", "/copy/f1.txt", "/copy/sub/f2.txt"}
        assert driver.file_exists("/a/f1.txt")

    def test_rename_folder(self, driver: ObjectStorageDriver, tree):
        result = driver.rename_folder("/a/", "renamed")
        assert result.success is True
        assert driver.file_exists("/renamed/sub/f2.txt")

    def test_move_into_itself_refused(self, driver: ObjectStorageDriver, tree):
        result = driver.move_folder_within_storage("/a/", "/a/sub/", "x")
        assert result.success is False
        assert result.mapping == {}
        assert driver.file_exists("/a/f1.txt")

    def test_same_destination_is_noop(self, driver: ObjectStorageDriver, tree):
        result = driver.move_folder_within_storage("/a/", "/", "a")
        assert result.success is True
        assert result.mapping == {}

    def test_missing_source(self, driver: ObjectStorageDriver):
        result = driver.move_folder_within_storage("/ghost/", "/", "x")
        assert result.success is False
        assert "not found" in result.message

    def test_partial_move_reports_progress(self, engine, tmp_path: Path):
        store = FailingCopyStore(engine, BUCKET, page_size=2, chunk_size=4)
        store.fail_on = frozenset({"a/sub/f2.txt"})
        for key in ("a/", "a/f1.txt", "a/sub/f2.txt"):
            store.put(key, b"" if key.endswith("/") else b"x")

        with ObjectStorageDriver(store, temp_dir=tmp_path) as driver:
            result = driver.move_folder_within_storage("/a/", "/", "b")

            assert result.success is False
            assert result.failed_path == "/a/sub/f2.txt"
            assert result.mapping == {"/a/": "/b/", "/a/f1.txt": "/b/f1.txt"}
            assert driver.file_exists("/a/sub/f2.txt")
            assert driver.file_exists("/b/f1.txt")
