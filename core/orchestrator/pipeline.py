"""Classify-then-extract pipeline over registered record shapes."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from core.classify.naive_bayes import ShapeClassifier
from core.shapes.registry import RecordShape, register_shape
from core.utils.errors import NotLearnedError, RegistrationError
from core.utils.log_events import log_event

logger = logging.getLogger("shapefill.pipeline")


class NaturalLanguageProcessor:
    """Turns utterances into records of the registered shapes.

    Usage::

        nl = NaturalLanguageProcessor()
        nl.register_shape(Song, ["play {Name} by {Artist}"])
        nl.learn()  # after every shape is registered, before process
        song = nl.process("play King by Lauren Aquilina")
    """

    def __init__(self, classifier: ShapeClassifier | None = None) -> None:
        self._shapes: list[RecordShape] = []
        self._classifier = classifier or ShapeClassifier()
        self._learned = False

    @property
    def shapes(self) -> list[RecordShape]:
        return list(self._shapes)

    def register_shape(
        self, descriptor: object, templates: Sequence[str], **options: Any
    ) -> RecordShape:
        """Register a record shape; see ``register_shape`` for the options."""

        shape = register_shape(descriptor, templates, **options)
        self._shapes.append(shape)
        self._learned = False
        return shape

    def learn(self) -> None:
        """Compile every shape's templates, then train the shape classifier.

        Compilation stops at the first failing shape.
        """

        if not self._shapes:
            raise RegistrationError("register at least one shape before learning")

        samples: list[str] = []
        labels: list[int] = []
        for shape_index, shape in enumerate(self._shapes):
            shape.learn()
            samples.extend(shape.raw_templates)
            labels.extend([shape_index] * len(shape.raw_templates))

        self._classifier.fit(samples, labels)
        self._learned = True
        log_event(
            logger,
            logging.INFO,
            "learned",
            shapes=[shape.name for shape in self._shapes],
            templates=len(samples),
        )

    def classify(self, utterance: str) -> RecordShape:
        """Return the shape the classifier assigns to ``utterance``."""

        if not self._learned:
            raise NotLearnedError("call learn after registering shapes and before processing")
        return self._shapes[self._classifier.predict(utterance)]

    def process(self, utterance: str) -> Any:
        """Classify ``utterance`` and return a new record filled from it."""

        return self.classify(utterance).fit(utterance)
