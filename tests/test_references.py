from __future__ import annotations

import asyncio
from typing import Optional

from aireporter.models import StoredImage
from aireporter.references import (
    describe_attached_images,
    image_url,
    media_url_to_path,
    referenced_image_ids,
    resolve_references,
    resolve_references_inline,
    rewrite_scheme,
    strip_dangling_references,
)


def _image(image_id: str = "img-abc123", path: str = "/data/images/img-abc123.png", desc: str = "Login page") -> StoredImage:
    return StoredImage(id=image_id, report_id="r1", description=desc, file_path=path, created_at=1)


def test_resolve_known_and_unknown_tokens() -> None:
    text = "See @img-abc123 and @img-zzz999."
    out = resolve_references(text, [_image()])

    assert '<img src="media://%2Fdata%2Fimages%2Fimg-abc123.png" alt="Login page" />' in out
    assert "*(Image not found: img-zzz999)*" in out


def test_resolution_is_deterministic() -> None:
    text = "@img-abc123 @img-abc123 @img-gone00"
    images = [_image()]
    assert resolve_references(text, images) == resolve_references(text, images)


def test_removed_image_renders_placeholder_not_empty() -> None:
    text = "before @img-abc123 after"
    assert resolve_references(text, []) == "before *(Image not found: img-abc123)* after"


def test_file_scheme_and_cache_bust() -> None:
    image = _image(path="/tmp/a b/img-abc123.png")
    assert image_url(image, "file") == "file://%2Ftmp%2Fa%20b%2Fimg-abc123.png"
    assert image_url(image, cache_bust=42).endswith("?t=42")
    assert media_url_to_path(image_url(image, cache_bust=42)) == "/tmp/a b/img-abc123.png"


def test_alt_text_is_escaped() -> None:
    out = resolve_references("@img-abc123", [_image(desc='say "hi" <b>')])
    assert 'alt="say &quot;hi&quot; &lt;b&gt;"' in out


def test_inline_resolution_loads_each_image_once() -> None:
    calls: list[str] = []

    async def loader(path: str) -> Optional[str]:
        calls.append(path)
        return "data:image/png;base64,AAAA"

    text = "@img-abc123 twice @img-abc123 and @img-nope00"
    out = asyncio.run(resolve_references_inline(text, [_image()], loader))

    assert calls == ["/data/images/img-abc123.png"]
    assert out.count('src="data:image/png;base64,AAAA"') == 2
    assert "*(Image not found: img-nope00)*" in out


def test_inline_resolution_failed_load_becomes_placeholder() -> None:
    async def broken(path: str) -> Optional[str]:
        raise OSError("disk gone")

    out = asyncio.run(resolve_references_inline("@img-abc123", [_image()], broken))
    assert out == "*(Image not found: img-abc123)*"


def test_strip_dangling_and_describe() -> None:
    images = [_image(), _image("img-def456", "/p/img-def456.jpg", "Response")]
    cleaned = strip_dangling_references("x @img-abc123 y @img-fake00 z", images)

    assert cleaned == "x @img-abc123 y  z"
    assert describe_attached_images(images) == (
        '\n\n[ATTACHED SCREENSHOTS]\n{img-abc123: "Login page"}\n{img-def456: "Response"}'
    )
    assert describe_attached_images([]) == ""


def test_referenced_ids_in_first_appearance_order() -> None:
    assert referenced_image_ids("@img-b @img-a @img-b") == ["img-b", "img-a"]


def test_rewrite_scheme() -> None:
    assert rewrite_scheme('<img src="media://%2Fx.png" />') == '<img src="file://%2Fx.png" />'
