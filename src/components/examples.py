"""Example questions offered to users before their first message."""

from __future__ import annotations

import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

ExampleHandler = Callable[[str], None]

EXAMPLE_QUESTIONS: tuple[str, ...] = (
    "¿Quién tiene experiencia en .NET o C# y ha trabajado en el sector bancario?",
    "¿Qué candidatos podrían aplicar a una posición de QA Automatizado Senior para Banco de Guayaquil?",
    "¿Hay algun candidato con más de 3 años de experiencia en Java?",
)


class ExamplePrompts:
    """Fixed example questions plus an optional selection handler."""

    def __init__(
        self,
        *,
        examples: tuple[str, ...] = EXAMPLE_QUESTIONS,
        on_example_clicked: Optional[ExampleHandler] = None,
    ) -> None:
        self._examples = examples
        self.on_example_clicked = on_example_clicked

    @property
    def examples(self) -> list[str]:
        return list(self._examples)

    def select(self, example: str) -> bool:
        """Forward ``example`` to the handler; return whether one was registered."""

        if self.on_example_clicked is None:
            logger.debug("Example selected with no handler registered")
            return False
        self.on_example_clicked(example)
        return True
