def render(page):
    return {"head": ["<title>ok</title>"], "body": 123}
