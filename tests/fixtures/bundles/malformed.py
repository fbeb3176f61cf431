"""Returns the wrong types for head and body."""


def render(page):
    return {"head": "not-a-list", "body": 123}
