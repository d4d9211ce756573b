from __future__ import annotations

import pytest


class StubMeasurer:
    """Deterministic metrics: every glyph is half the font size wide, lines are 1.2x tall."""

    def measure(self, text: str, size: float, bold: bool = False) -> tuple[float, float]:
        return len(text) * size * 0.5, size * 1.2


@pytest.fixture
def measurer() -> StubMeasurer:
    return StubMeasurer()
