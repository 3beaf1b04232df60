"""Factory for pretrained Inception V4 networks and their variants."""

from pathlib import Path
from typing import Optional, Tuple, Union
import logging
import warnings

import torch.nn as nn

from .architecture import (
    PRETRAINED_CLASSES,
    inception_v4_custom_tail_definition,
    inception_v4_definition,
    inception_v4_tail_definition,
    inception_v4_without_tail_definition,
)
from .compile import GraphBuilder
from .context import NetworkContext
from .engine import SupervisedNetwork
from .ir import GraphDefinition
from .labels import InceptionV4Labels
from .weights.formats import WeightTensor
from .weights.loader import PretrainedWeightsLoader, WeightsLoader
from .weights.store import DEFAULT_NAMESPACE, ResourceStore

logger = logging.getLogger(__name__)


class InceptionV4Factory:
    """
    Creates Inception V4 networks.

    The weights loader is passed in explicitly; use ``pretrained()`` for the
    usual setup reading weights and labels from one resource store.
    """

    def __init__(self,
                 weights_loader: WeightsLoader,
                 labels: Optional[InceptionV4Labels] = None,
                 store: Optional[ResourceStore] = None):
        """
        Args:
            weights_loader: Source of the body and tail weights
            labels: Class labels; read from ``store`` when omitted
            store: Resource store holding the label list
        """
        self.weights_loader = weights_loader
        self.labels = labels
        self.store = store

    @classmethod
    def pretrained(cls,
                   root: Optional[Union[str, Path]] = None,
                   package: Optional[str] = None,
                   namespace: str = DEFAULT_NAMESPACE) -> "InceptionV4Factory":
        """Factory reading weights and labels from a package or filesystem store."""
        store = ResourceStore(root=root, package=package, namespace=namespace)
        return cls(PretrainedWeightsLoader(store), store=store)

    def _create(self, definition: GraphDefinition, context: Optional[NetworkContext]) -> SupervisedNetwork:
        context = context or NetworkContext()
        logger.info("Creating Inception V4 Network %s...", definition.name)

        graph = GraphBuilder(self.weights_loader, context).build(definition)
        network = SupervisedNetwork(definition.name, graph)

        if context.freeze_out:
            for module in network.modules():
                if isinstance(module, (nn.Conv2d, nn.BatchNorm2d)):
                    module.requires_grad_(False)

        network.to(context.device)
        network.train(context.training)
        logger.info("Created %s with %d parameters on %s", definition.name,
                    graph.summary()["parameters"], context.device)
        return network

    def create_inception_v4(self,
                            context: Optional[NetworkContext] = None,
                            regularisation_lambda: Optional[float] = None,
                            dropout_keep_probability: Optional[float] = None) -> SupervisedNetwork:
        """
        The pretrained 1001-class classifier.

        Args:
            context: Device and training settings
            regularisation_lambda: Weight decay of the final dense layer
            dropout_keep_probability: Keep probability of the final dense layer's input

        Raises:
            WeightsError: A weight blob is missing or malformed
        """
        name = "inceptionV4"
        if regularisation_lambda is not None or dropout_keep_probability is not None:
            name = "inceptionV4WithRegularisation"
        definition = inception_v4_definition(
            regularisation_lambda=regularisation_lambda,
            dropout_keep_probability=1.0 if dropout_keep_probability is None else dropout_keep_probability,
            name=name,
        )
        return self._create(definition, context)

    def create_inception_v4_with_custom_tail(self,
                                             context: Optional[NetworkContext],
                                             output_neurons: int,
                                             weights: Optional[WeightTensor] = None,
                                             bias: Optional[WeightTensor] = None,
                                             regularisation_lambda: float = 0.0,
                                             dropout_keep_probability: float = 1.0) -> SupervisedNetwork:
        """
        Pretrained body with a new ``output_neurons``-way dense layer.

        Omitted tail weights keep their default initialisation, ready for
        training on a new task.
        """
        definition = inception_v4_custom_tail_definition(
            output_neurons, weights, bias, regularisation_lambda, dropout_keep_probability)
        return self._create(definition, context)

    def create_inception_v4_tail(self,
                                 context: Optional[NetworkContext],
                                 output_neurons: int,
                                 weights: Optional[WeightTensor] = None,
                                 bias: Optional[WeightTensor] = None,
                                 regularisation_lambda: float = 0.0,
                                 dropout_keep_probability: float = 1.0) -> SupervisedNetwork:
        """Only the tail, taking the 8x8x1536 features of the body as input."""
        definition = inception_v4_tail_definition(
            output_neurons, weights, bias, regularisation_lambda, dropout_keep_probability)
        return self._create(definition, context)

    def create_inception_v4_without_tail(self, context: Optional[NetworkContext] = None) -> SupervisedNetwork:
        """The pretrained body, producing 8x8x1536 features."""
        return self._create(inception_v4_without_tail_definition(), context)

    def create_inception_v4_labels(self, expected: Optional[int] = PRETRAINED_CLASSES) -> InceptionV4Labels:
        """
        Labels mapping output indices to class names.

        Raises:
            MissingResourceError: The store has no label list
        """
        if self.labels is None:
            if self.store is None:
                raise ValueError("No labels or resource store configured")
            self.labels = InceptionV4Labels.from_store(self.store)
        if expected is not None and len(self.labels) != expected:
            warnings.warn(f"Expected {expected} labels, found {len(self.labels)}")
        return self.labels


def load_inception_v4(context: Optional[NetworkContext] = None,
                      root: Optional[Union[str, Path]] = None,
                      package: Optional[str] = None) -> Tuple[SupervisedNetwork, InceptionV4Labels]:
    """
    One-shot construction of the pretrained classifier.

    Args:
        context: Device and training settings
        root: Filesystem directory holding the weights namespace
        package: Package holding the weights as resources, instead of ``root``

    Returns:
        ``(network, labels)``, the labels ordered by output index
    """
    factory = InceptionV4Factory.pretrained(root=root, package=package)
    network = factory.create_inception_v4(context)
    return network, factory.create_inception_v4_labels()
