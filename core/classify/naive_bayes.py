"""Multinomial naive Bayes text classifiers over word counts."""

from __future__ import annotations

from collections.abc import Sequence

from sklearn.feature_extraction.text import CountVectorizer
from sklearn.naive_bayes import MultinomialNB
from sklearn.pipeline import Pipeline, make_pipeline

from core.utils.errors import NotLearnedError, RegistrationError

# Keep single-character words and numbers; punctuation and braces are dropped.
_TOKEN_PATTERN = r"(?u)\b\w+\b"


class ShapeClassifier:
    """Predicts the index of the record shape an utterance belongs to."""

    def __init__(self, alpha: float = 1.0) -> None:
        self._alpha = alpha
        self._pipeline: Pipeline | None = None

    @property
    def trained(self) -> bool:
        return self._pipeline is not None

    def fit(self, samples: Sequence[str], labels: Sequence[int]) -> None:
        """Train on labeled samples, replacing any previous model."""

        if not samples:
            raise ValueError("classifier needs at least one training sample")
        if len(samples) != len(labels):
            raise ValueError(
                f"got {len(samples)} samples but {len(labels)} labels for classifier training"
            )

        pipeline = make_pipeline(
            CountVectorizer(token_pattern=_TOKEN_PATTERN, lowercase=True),
            MultinomialNB(alpha=self._alpha),
        )
        pipeline.fit(list(samples), list(labels))
        self._pipeline = pipeline

    def predict(self, text: str) -> int:
        if self._pipeline is None:
            raise NotLearnedError("classifier must be trained before predicting")
        return int(self._pipeline.predict([text])[0])


class TextClassifier:
    """Named-class classifier: register classes with samples, learn, classify."""

    def __init__(self, alpha: float = 1.0) -> None:
        self._names: list[str] = []
        self._samples: list[list[str]] = []
        self._model = ShapeClassifier(alpha=alpha)

    @property
    def classes(self) -> list[str]:
        return list(self._names)

    def new_class(self, name: str, samples: Sequence[str]) -> None:
        if not name:
            raise RegistrationError("class name can't be empty")
        if name in self._names:
            raise RegistrationError(f"class {name!r} is already registered")
        if isinstance(samples, str) or not samples:
            raise RegistrationError(f"class {name!r} needs a non-empty list of samples")
        self._names.append(name)
        self._samples.append(list(samples))

    def learn(self) -> None:
        if not self._names:
            raise RegistrationError("register at least one class before learning")
        texts: list[str] = []
        labels: list[int] = []
        for label, samples in enumerate(self._samples):
            texts.extend(samples)
            labels.extend([label] * len(samples))
        self._model.fit(texts, labels)

    def classify(self, text: str) -> str:
        return self._names[self._model.predict(text)]
