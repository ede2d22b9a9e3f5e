from __future__ import annotations

import json
from pathlib import Path

import pytest

from aireporter.kvstore import JsonStore
from aireporter.models import Folder, Report
from aireporter.store import ProjectStore, collect_report_ids, find_in_tree, get_all_reports


def _store(tmp_path: Path) -> ProjectStore:
    return ProjectStore(JsonStore(tmp_path / "store"))


def _tree_snapshot(item) -> dict:
    return item.to_dict()


def test_create_project_prepends_and_persists(tmp_path: Path) -> None:
    store = _store(tmp_path)
    first = store.create_project("First")
    second = store.create_project("Second", description="desc")

    projects = _store(tmp_path).list_projects()
    assert [p.id for p in projects] == [second.id, first.id]
    assert projects[0].description == "desc"
    assert projects[1].description is None


def test_create_project_rejects_empty_name(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        _store(tmp_path).create_project("   ")


def test_find_report_at_any_depth(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    parent_id = None
    created = []
    for depth in range(5):
        folder = store.create_folder(project.id, f"level-{depth}", parent_folder_id=parent_id)
        assert folder is not None
        report = store.add_report(project.id, f"report-{depth}", parent_folder_id=folder.id)
        assert report is not None
        created.append((folder, report))
        parent_id = folder.id

    for folder, report in created:
        found = store.find_report(project.id, report.id)
        assert found is not None and found.id == report.id and found.name == report.name
        assert store.find_folder(project.id, folder.id).id == folder.id
        # a folder id never matches as a report and vice versa
        assert store.find_report(project.id, folder.id) is None
        assert store.find_folder(project.id, report.id) is None


def test_add_report_missing_parent_or_project(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    report = store.add_report(project.id, "R1")

    assert store.add_report("missing", "R") is None
    assert store.add_report(project.id, "R", parent_folder_id="nope") is None
    # a report is not a valid parent
    assert store.create_folder(project.id, "F", parent_folder_id=report.id) is None
    assert len(store.get_project(project.id).items) == 1


def test_add_report_rejects_unknown_mode(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    with pytest.raises(ValueError):
        store.add_report(project.id, "R", mode="bugcrowd")


def test_items_are_prepended(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    a = store.add_report(project.id, "A")
    b = store.create_folder(project.id, "B")
    c = store.add_report(project.id, "C")

    items = store.get_project(project.id).items
    assert [item.id for item in items] == [c.id, b.id, a.id]


def test_delete_item_removes_subtree_and_keeps_siblings(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    keep = store.create_folder(project.id, "Keep")
    store.add_report(project.id, "keep-child", parent_folder_id=keep.id)
    doomed = store.create_folder(project.id, "Doomed")
    inner = store.create_folder(project.id, "Inner", parent_folder_id=doomed.id)
    deep = store.add_report(project.id, "deep", parent_folder_id=inner.id)
    top = store.add_report(project.id, "top")

    before = {item.id: _tree_snapshot(item) for item in store.get_project(project.id).items}
    removed = store.delete_item(project.id, doomed.id)

    assert isinstance(removed, Folder)
    assert set(collect_report_ids(removed)) == {deep.id}
    after = {item.id: _tree_snapshot(item) for item in store.get_project(project.id).items}
    assert doomed.id not in after
    assert after[keep.id] == before[keep.id]
    assert after[top.id] == before[top.id]
    assert store.find_item(project.id, inner.id) is None
    assert store.find_report(project.id, deep.id) is None


def test_delete_nested_item_only_touches_its_container(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    folder = store.create_folder(project.id, "F")
    r1 = store.add_report(project.id, "r1", parent_folder_id=folder.id)
    r2 = store.add_report(project.id, "r2", parent_folder_id=folder.id)

    removed = store.delete_item(project.id, r1.id)

    assert isinstance(removed, Report) and removed.id == r1.id
    remaining = store.find_folder(project.id, folder.id).children
    assert [child.id for child in remaining] == [r2.id]


def test_delete_unknown_item_does_not_write(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    path = tmp_path / "store" / "projects.json"
    before = path.read_text(encoding="utf-8")

    assert store.delete_item(project.id, "nope") is None
    assert store.delete_item("nope", "nope") is None
    assert path.read_text(encoding="utf-8") == before


def test_update_report_leaves_findings_untouched(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    report = store.add_report(project.id, "R", findings="original findings")
    store.update_report(project.id, report.id, findings="edited while generating")

    updated = store.update_report(project.id, report.id, markdown="# Generated", mode="hackerone")

    assert updated is not None
    reloaded = store.find_report(project.id, report.id)
    assert reloaded.findings == "edited while generating"
    assert reloaded.markdown == "# Generated"
    assert reloaded.mode == "hackerone"
    assert reloaded.created_at == report.created_at


def test_update_report_bumps_project_timestamp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    clock = iter(range(1_000, 10_000, 10))
    monkeypatch.setattr("aireporter.store.now_ms", lambda: next(clock))
    store = _store(tmp_path)
    project = store.create_project("Acme")
    report = store.add_report(project.id, "R")
    before = store.get_project(project.id).updated_at

    updated = store.update_report(project.id, report.id, name="Renamed")

    assert updated.updated_at > report.updated_at
    assert store.get_project(project.id).updated_at == updated.updated_at > before


def test_update_report_ignores_unknown_fields(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    report = store.add_report(project.id, "R")

    updated = store.update_report(project.id, report.id, id="hijack", markdown="ok")

    assert updated.id == report.id
    assert updated.markdown == "ok"


def test_update_report_does_not_match_folders(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    folder = store.create_folder(project.id, "F")

    assert store.update_report(project.id, folder.id, markdown="x") is None
    assert store.update_folder(project.id, folder.id, name="G").name == "G"


def test_update_and_delete_project(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")

    assert store.update_project(project.id, name="Acme Corp").name == "Acme Corp"
    assert store.update_project("missing", name="x") is None
    assert store.delete_project(project.id) is True
    assert store.delete_project(project.id) is False
    assert store.list_projects() == []


def test_move_item_between_folders(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    outer = store.create_folder(project.id, "Outer")
    inner = store.create_folder(project.id, "Inner", parent_folder_id=outer.id)
    report = store.add_report(project.id, "R")

    assert store.move_item(project.id, report.id, inner.id) is True
    assert [child.id for child in store.find_folder(project.id, inner.id).children] == [report.id]
    assert all(item.id != report.id for item in store.get_project(project.id).items)

    # back to the root
    assert store.move_item(project.id, report.id) is True
    assert store.get_project(project.id).items[0].id == report.id


def test_move_item_refuses_cycles_and_non_folders(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    outer = store.create_folder(project.id, "Outer")
    inner = store.create_folder(project.id, "Inner", parent_folder_id=outer.id)
    report = store.add_report(project.id, "R")

    assert store.move_item(project.id, outer.id, outer.id) is False
    assert store.move_item(project.id, outer.id, inner.id) is False
    assert store.move_item(project.id, outer.id, report.id) is False
    assert store.move_item(project.id, "missing", outer.id) is False
    assert store.find_folder(project.id, inner.id) is not None


def test_get_all_reports_is_preorder(tmp_path: Path) -> None:
    store = _store(tmp_path)
    project = store.create_project("Acme")
    r_last = store.add_report(project.id, "last")
    folder = store.create_folder(project.id, "F")
    r_nested = store.add_report(project.id, "nested", parent_folder_id=folder.id)
    r_first = store.add_report(project.id, "first")

    loaded = store.get_project(project.id)
    assert [r.id for r in get_all_reports(loaded)] == [r_first.id, r_nested.id, r_last.id]
    assert find_in_tree(loaded.items, r_nested.id).name == "nested"


def test_legacy_project_is_migrated_on_load_and_persisted(tmp_path: Path) -> None:
    kv = JsonStore(tmp_path / "store")
    legacy = [
        {
            "id": "p1",
            "name": "Legacy",
            "reports": [
                {"id": "r1", "name": "Old", "findings": "f", "markdown": "m", "createdAt": 1, "updatedAt": 2},
            ],
            "createdAt": 1,
            "updatedAt": 2,
        }
    ]
    kv.set("projects", legacy)
    store = ProjectStore(kv)

    report = store.find_report("p1", "r1")
    assert report is not None and report.findings == "f" and report.markdown == "m"

    store.create_folder("p1", "New")
    raw = json.loads((tmp_path / "store" / "projects.json").read_text(encoding="utf-8"))
    assert "reports" not in raw[0]
    assert {item["type"] for item in raw[0]["items"]} == {"report", "folder"}


def test_acme_folder_deletion_scenario(tmp_path: Path) -> None:
    store = _store(tmp_path)
    acme = store.create_project("Acme")
    web = store.create_folder(acme.id, "Web")
    login = store.add_report(acme.id, "Login Bug", parent_folder_id=web.id, findings="SQLi on /login @img-abc123")

    assert store.find_report(acme.id, login.id) is not None
    store.delete_item(acme.id, web.id)

    assert store.find_report(acme.id, login.id) is None
    assert store.get_project(acme.id).items == []
