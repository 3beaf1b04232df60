"""Execution context used when building a network."""

import os
from dataclasses import dataclass
from typing import Optional, Union

import torch

DEVICE_ENV = "INCEPTIONV4_DEVICE"


@dataclass
class NetworkContext:
    """
    Backend and training settings applied by the factory.

    Attributes:
        device: Device the network is placed on
        training: Build in training mode (dropout active, batch norm
            statistics updated) rather than prediction mode
        freeze_out: Exclude the pretrained body from gradient updates
        regularisation_lambda: Weight decay of convolution kernels, and of
            dense weights that do not set their own
        batch_norm_regularisation_lambda: Weight decay of batch norm betas
    """
    device: Union[str, torch.device] = "cpu"
    training: bool = False
    freeze_out: bool = False
    regularisation_lambda: float = 0.0
    batch_norm_regularisation_lambda: float = 0.0

    def __post_init__(self):
        self.device = torch.device(self.device)
        if self.regularisation_lambda < 0 or self.batch_norm_regularisation_lambda < 0:
            raise ValueError("Regularisation lambdas must be non-negative")

    @classmethod
    def auto(cls, training: bool = False, device: Optional[str] = None, **kwargs) -> "NetworkContext":
        """
        Context on the configured device.

        The device comes from ``device``, then the ``INCEPTIONV4_DEVICE``
        environment variable, then CUDA when available, then the CPU.
        """
        if device is None:
            device = os.environ.get(DEVICE_ENV)
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        return cls(device=device, training=training, **kwargs)
