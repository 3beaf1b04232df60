"""Class labels of the pretrained network."""

from typing import List, Sequence, Tuple

import torch

from .weights.store import ResourceStore

LABELS_RESOURCE = "labels"


class InceptionV4Labels:
    """Ordered class names, one per output of the classifier."""

    def __init__(self, labels: Sequence[str]):
        self.labels = list(labels)

    @classmethod
    def from_store(cls, store: ResourceStore, name: str = LABELS_RESOURCE) -> "InceptionV4Labels":
        """Read ``{name}.txt`` from the store, one label per line."""
        text = store.read_text(name)
        return cls(line.strip() for line in text.splitlines() if line.strip())

    def __len__(self):
        return len(self.labels)

    def __iter__(self):
        return iter(self.labels)

    def get_class_name(self, index: int) -> str:
        if not 0 <= index < len(self.labels):
            raise IndexError(f"Class index {index} out of range for {len(self.labels)} labels")
        return self.labels[index]

    def decode_predictions(self, probabilities: torch.Tensor, top: int = 5) -> List[List[Tuple[str, float]]]:
        """
        Top classes of each row of a batch of class probabilities.

        Returns:
            One list of ``(label, probability)`` pairs per row, best first
        """
        if probabilities.dim() == 1:
            probabilities = probabilities.unsqueeze(0)
        if probabilities.shape[1] != len(self.labels):
            raise ValueError(
                f"Got {probabilities.shape[1]} outputs for {len(self.labels)} labels"
            )
        top = min(top, len(self.labels))
        values, indices = probabilities.detach().cpu().topk(top, dim=1)
        return [
            [(self.labels[i], p) for i, p in zip(row_indices.tolist(), row_values.tolist())]
            for row_values, row_indices in zip(values, indices)
        ]
