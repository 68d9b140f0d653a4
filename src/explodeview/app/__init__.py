"""
The APP layer wires the model and the explode engine into a PySide6 window.
Everything Qt-specific lives here.
"""
