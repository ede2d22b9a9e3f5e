from __future__ import annotations

import asyncio
import base64
import io
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from aireporter.api import create_session
from aireporter.hackerone import HackerOneReport, serialize_hackerone_report
from aireporter.models import Settings
from aireporter.session import TAB_FINDINGS, TAB_REPORT, VIEW_SETTINGS


class _StaticClient:
    def __init__(self, reply: str) -> None:
        self.reply = reply
        self.prompts: list[str] = []

    async def generate(self, prompt: str, *, temperature: float, model: str) -> str:
        self.prompts.append(prompt)
        return self.reply


class _RecordingRenderer:
    def __init__(self) -> None:
        self.html: list[str] = []

    def render(self, html: str) -> bytes:
        self.html.append(html)
        return b"%PDF-fake"


def _png() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (3, 3), "green").save(buffer, format="PNG")
    return buffer.getvalue()


def _session(tmp_path: Path, client: Optional[_StaticClient] = None, api_key: Optional[str] = "key"):
    client = client or _StaticClient("# Generated")
    session = create_session(tmp_path / "data", client_factory=lambda key: client)
    if api_key:
        session.save_settings(Settings(api_key=api_key))
    return session, client


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


def test_select_report_loads_editor_state(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "R", findings="f", markdown="m", mode="hackerone")

    loaded = session.select_report(project.id, report.id)

    assert loaded.id == report.id
    assert (session.findings, session.markdown) == ("f", "m")
    assert session.report_mode == session.pending_mode == "hackerone"
    assert session.active_tab == TAB_FINDINGS
    assert session.select_report(project.id, "missing") is None
    assert session.report_id == report.id


def test_generate_end_to_end(tmp_path: Path) -> None:
    session, client = _session(tmp_path)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "Login Bug")
    session.select_report(project.id, report.id)
    session.findings = "SQLi on /login"

    outcome = asyncio.run(session.generate())

    assert outcome.state == "completed"
    assert session.markdown == "# Generated"
    assert session.active_tab == TAB_REPORT
    assert session.store.find_report(project.id, report.id).markdown == "# Generated"
    assert "SQLi on /login" in client.prompts[0]
    assert session.notifications[-1].message == 'Report "Login Bug" generated successfully!'


def test_generate_guards(tmp_path: Path) -> None:
    session, client = _session(tmp_path, api_key=None)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "R")
    session.select_report(project.id, report.id)

    assert asyncio.run(session.generate()) is None
    assert session.notifications[-1].message == "Please enter some findings first"

    session.findings = "something"
    assert asyncio.run(session.generate()) is None
    assert session.active_view == VIEW_SETTINGS
    assert client.prompts == []


def test_attach_image_and_preview(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "R")
    session.select_report(project.id, report.id)

    data_url = "data:image/png;base64," + base64.b64encode(_png()).decode()
    image = asyncio.run(session.attach_image(data_url, "Login form"))

    assert image is not None
    assert [img.id for img in session.report_images] == [image.id]
    session.insert_reference(image.id, position=0)
    assert session.findings.startswith(f"@{image.id}")

    session.markdown = f"See @{image.id}"
    assert "media://" in session.preview_markdown
    assert asyncio.run(session.attach_image("data:text/plain;base64,AA==")) is None


def test_delete_folder_cascades_to_images_and_selection(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    web = session.store.create_folder(project.id, "Web")
    login = session.store.add_report(project.id, "Login Bug", parent_folder_id=web.id, findings="SQLi")
    other = session.store.add_report(project.id, "Other")

    session.select_report(project.id, other.id)
    other_image = asyncio.run(session.attach_image(_png(), "keep"))
    session.select_report(project.id, login.id)
    login_image = asyncio.run(session.attach_image(_png(), "gone"))

    assert asyncio.run(session.delete_item(project.id, web.id)) is True

    assert session.report_id is None
    assert session.store.find_report(project.id, login.id) is None
    assert session.images.get_image(login_image.id) is None
    assert not Path(login_image.file_path).exists()
    assert session.images.get_image(other_image.id) is not None


def test_save_editor_state(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "R")
    session.select_report(project.id, report.id)
    session.findings = "typed"
    session.markdown = "# draft"

    saved = session.save_editor_state()

    assert saved.findings == "typed"
    assert session.store.find_report(project.id, report.id).markdown == "# draft"


def test_exports_from_session(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    document = serialize_hackerone_report(HackerOneReport(title="IDOR", description="@img-none00"))
    report = session.store.add_report(project.id, "IDOR report", markdown=document, mode="hackerone")
    session.select_report(project.id, report.id)

    md_path = tmp_path / "out.md"
    assert asyncio.run(session.export_markdown(md_path)) is True
    exported = md_path.read_text(encoding="utf-8")
    assert exported.startswith("# IDOR\n")
    assert "*(Image not found: img-none00)*" in exported

    renderer = _RecordingRenderer()
    pdf_path = tmp_path / "out.pdf"
    assert asyncio.run(session.export_pdf(pdf_path, renderer=renderer)) is True
    assert pdf_path.read_bytes() == b"%PDF-fake"
    assert "<title>IDOR report</title>" in renderer.html[0]
    assert "#4ade80" in renderer.html[0]


def test_load_image_returns_data_url(tmp_path: Path) -> None:
    session, _ = _session(tmp_path)
    project = session.store.create_project("Acme")
    report = session.store.add_report(project.id, "R")
    session.select_report(project.id, report.id)
    image = asyncio.run(session.attach_image(_png(), "shot"))

    data_url = asyncio.run(session.load_image(image.id))

    assert data_url is not None and data_url.startswith("data:image/png;base64,")
    assert asyncio.run(session.load_image("img-none00")) is None

    Path(image.file_path).unlink()
    assert asyncio.run(session.load_image(image.id)) is None
    assert session.notifications[-1].message == "Failed to load image"
