"""
Built-in node functions.

Each module groups functions by palette section. They are registered with
``register_all_functions``.
"""
