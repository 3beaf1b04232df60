"""Supervised network wrapper around a built component graph."""

from typing import Dict, List, Any

import torch
import torch.nn as nn
import torch.nn.functional as F

from .compile import ComponentGraph
from .ir import Neurons3D


class SupervisedNetwork(nn.Module):
    """
    Executable classification network.

    Inputs are batches of images in NCHW layout matching ``input_neurons``;
    for the pretrained network that is ``(N, 3, 299, 299)`` and the output
    is ``(N, 1001)`` class probabilities.
    """

    def __init__(self, name: str, graph: ComponentGraph):
        super().__init__()
        self.name = name
        self.graph = graph

    @property
    def input_neurons(self) -> Neurons3D:
        return self.graph.input_neurons

    @property
    def output_neurons(self) -> Neurons3D:
        return self.graph.output_neurons

    @property
    def device(self) -> torch.device:
        for param in self.parameters():
            return param.device
        return torch.device("cpu")

    def _check_input(self, inputs: torch.Tensor):
        expected = (self.input_neurons.depth, self.input_neurons.height, self.input_neurons.width)
        if inputs.dim() != 4 or tuple(inputs.shape[1:]) != expected:
            raise ValueError(
                f"{self.name} expects inputs of shape (N, {', '.join(map(str, expected))}), "
                f"got {tuple(inputs.shape)}"
            )

    def forward(self, inputs: torch.Tensor) -> torch.Tensor:
        self._check_input(inputs)
        return self.graph(inputs)

    def predict(self, inputs: torch.Tensor) -> torch.Tensor:
        """Outputs of the network for a batch, without tracking gradients."""
        with torch.no_grad():
            return self(inputs.to(self.device))

    def evaluate(self, inputs: torch.Tensor, targets: torch.Tensor) -> Dict[str, float]:
        """
        Score a labelled batch.

        Args:
            inputs: Image batch
            targets: Class indices, shape (N,)

        Returns:
            Dictionary with accuracy, mean cross-entropy loss and sample count
        """
        probabilities = self.predict(inputs).reshape(inputs.shape[0], -1)
        targets = targets.to(probabilities.device).reshape(-1)
        if targets.shape[0] != probabilities.shape[0]:
            raise ValueError(
                f"Got {targets.shape[0]} targets for {probabilities.shape[0]} inputs"
            )

        log_probabilities = torch.log(probabilities.clamp_min(torch.finfo(probabilities.dtype).tiny))
        loss = F.nll_loss(log_probabilities, targets)
        accuracy = (probabilities.argmax(dim=1) == targets).float().mean()
        return {
            "accuracy": accuracy.item(),
            "loss": loss.item(),
            "count": int(targets.shape[0]),
        }

    def parameter_groups(self) -> List[Dict[str, Any]]:
        """
        Trainable parameters grouped by weight decay, for a torch optimizer.

        Parameters frozen by the context are left out.
        """
        decay = {f"graph.{name}": value for name, value in self.graph.weight_decay.items()}
        groups: Dict[float, List[nn.Parameter]] = {}
        for name, param in self.named_parameters():
            if not param.requires_grad:
                continue
            groups.setdefault(decay.get(name, 0.0), []).append(param)
        return [
            {"params": params, "weight_decay": weight_decay}
            for weight_decay, params in sorted(groups.items())
        ]

    def summary(self) -> Dict[str, int]:
        return self.graph.summary()
