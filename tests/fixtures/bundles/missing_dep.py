import ssrbridge_fixture_missing_dependency  # noqa: F401


def render(page):
    return {"head": [], "body": ""}
