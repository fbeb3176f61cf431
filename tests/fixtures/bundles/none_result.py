def render(page):
    return None
