title = "nothing to render here"
