"""Minimal bundle: head and body derived from the page object."""

import json


def render(page):
    component = page.get("component") or "Unknown"
    props = page.get("props") or {}
    return {
        "head": [f"<title>{component}</title>", '<meta name="test" content="true">'],
        "body": f'<div id="app" data-component="{component}">{json.dumps(props, separators=(",", ":"))}</div>',
    }
