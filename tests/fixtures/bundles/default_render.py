class _Renderer:
    @staticmethod
    def render(page):
        return {"head": ["<title>default.render</title>"], "body": page.get("component", "")}


default = _Renderer()
