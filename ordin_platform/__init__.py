# ordin_platform/__init__.py
