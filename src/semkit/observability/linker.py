"""SemkitEventLinker: isolated event namespace for semkit observability.

All semkit subscribers register here. Separate from any other
pyventus usage in the process.
"""

from __future__ import annotations

from pyventus.events import EventLinker


class SemkitEventLinker(EventLinker):
    """Isolated event namespace for semkit observability."""

    pass
