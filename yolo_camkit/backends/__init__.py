"""
Optional inference backends for yolo_camkit.

Backends are kept in a separate module so core functionality (pre/post-processing)
stays lightweight and can be used without installing inference runtimes.
Each backend exposes `descriptor` and `run(tensor)`, i.e. an InferenceEngine.
"""

from __future__ import annotations

__all__ = []
