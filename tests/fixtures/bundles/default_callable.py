def default(page):
    return {"body": "<p>default</p>"}
