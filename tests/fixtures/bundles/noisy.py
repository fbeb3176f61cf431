"""Prints to stdout while importing and rendering."""

print("bundle imported")


def render(page):
    print("rendering", page.get("component"))
    return {"head": [], "body": "<div>noisy</div>"}
