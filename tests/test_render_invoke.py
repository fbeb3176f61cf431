from types import SimpleNamespace

import pytest

from ssrbridge.render import ModuleHandle, NoRenderExport, RenderedPage, RenderFailed, call_render, coerce_rendered_page


def _handle(fn) -> ModuleHandle:
    return ModuleHandle(render=fn, path="/virtual/bundle.py", module_name="virtual", export="render")


def test_coerce_passes_well_formed_result_verbatim():
    page = coerce_rendered_page({"head": ["<title>A</title>", "<meta charset=utf-8>"], "body": "<main>A</main>"})
    assert page == RenderedPage(head=["<title>A</title>", "<meta charset=utf-8>"], body="<main>A</main>")


def test_coerce_defaults_missing_fields():
    assert coerce_rendered_page({}) == RenderedPage(head=[], body="")
    assert coerce_rendered_page({"body": "only body"}) == RenderedPage(head=[], body="only body")


def test_coerce_reads_attributes_of_objects():
    page = coerce_rendered_page(SimpleNamespace(head=("<title>t</title>",), body="b"))
    assert page.head == ["<title>t</title>"]


@pytest.mark.parametrize(
    ("result", "message"),
    [
        ({"head": "not-a-list", "body": 123}, "head must be a list of strings"),
        ({"head": ["ok", 1], "body": ""}, "head must be a list of strings"),
        ({"head": [], "body": 123}, "body must be a string"),
        ({"head": [], "body": ["x"]}, "body must be a string"),
    ],
)
def test_coerce_rejects_wrong_types(result, message):
    with pytest.raises(RenderFailed) as exc:
        coerce_rendered_page(result)
    assert exc.value.message == message


def test_coerce_rejects_none():
    with pytest.raises(RenderFailed):
        coerce_rendered_page(None)


@pytest.mark.asyncio
async def test_call_render_sync_function():
    page = await call_render(_handle(lambda page: {"head": [], "body": page["component"]}), {"component": "Home"})
    assert page.body == "Home"


@pytest.mark.asyncio
async def test_call_render_awaits_coroutines():
    async def render(page):
        return {"head": [f"<title>{page['component']}</title>"], "body": ""}

    page = await call_render(_handle(render), {"component": "About"})
    assert page.head == ["<title>About</title>"]


@pytest.mark.asyncio
async def test_call_render_wraps_exceptions():
    def render(page):
        raise RuntimeError("boom")

    with pytest.raises(RenderFailed) as exc:
        await call_render(_handle(render), {})
    assert exc.value.message == "boom"
    assert isinstance(exc.value.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_call_render_uses_class_name_for_empty_messages():
    async def render(page):
        raise KeyError()

    with pytest.raises(RenderFailed) as exc:
        await call_render(_handle(render), {})
    assert exc.value.message == "KeyError"


@pytest.mark.asyncio
async def test_call_render_keeps_render_errors():
    def render(page):
        raise NoRenderExport("/virtual/nested.py")

    with pytest.raises(NoRenderExport):
        await call_render(_handle(render), {})
