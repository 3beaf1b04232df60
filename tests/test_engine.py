import pytest
import torch

from inceptionv4 import (
    InceptionV4Factory,
    InceptionV4Labels,
    NetworkContext,
    UntrainedWeightsLoader,
    WeightTensor,
)
from inceptionv4.weights.formats import DENSE_FORMAT


def tail_weights(output_neurons, favoured=None):
    weights = WeightTensor(torch.zeros(output_neurons, 1536), DENSE_FORMAT,
                           (output_neurons,), (1536,))
    bias = torch.zeros(output_neurons, 1)
    if favoured is not None:
        bias[favoured] = 5.0
    return weights, WeightTensor(bias, DENSE_FORMAT, (output_neurons,), (1,))


def create_tail(output_neurons=4, favoured=None, **kwargs):
    weights, bias = tail_weights(output_neurons, favoured)
    factory = InceptionV4Factory(UntrainedWeightsLoader())
    return factory.create_inception_v4_tail(NetworkContext(), output_neurons, weights, bias, **kwargs)


def test_outputs_are_probabilities():
    network = create_tail(output_neurons=6)

    probabilities = network.predict(torch.randn(3, 1536, 8, 8))

    assert probabilities.shape == (3, 6)
    assert torch.allclose(probabilities.sum(dim=1), torch.ones(3))
    assert not probabilities.requires_grad


def test_rejects_wrong_input_shape():
    network = create_tail()

    with pytest.raises(ValueError):
        network(torch.randn(1, 1536, 7, 7))
    with pytest.raises(ValueError):
        network(torch.randn(1536, 8, 8))


def test_evaluate():
    network = create_tail(output_neurons=4, favoured=2)

    scores = network.evaluate(torch.randn(4, 1536, 8, 8), torch.tensor([2, 2, 2, 0]))

    assert scores["count"] == 4
    assert scores["accuracy"] == pytest.approx(0.75)
    assert scores["loss"] > 0


def test_evaluate_rejects_mismatched_targets():
    network = create_tail()

    with pytest.raises(ValueError):
        network.evaluate(torch.randn(2, 1536, 8, 8), torch.tensor([0, 1, 2]))


def test_parameter_groups():
    network = create_tail(regularisation_lambda=0.01)

    groups = network.parameter_groups()

    assert [group["weight_decay"] for group in groups] == [0.0, 0.01]
    assert groups[0]["params"][0] is network.graph.components[1][1].bias
    assert groups[1]["params"][0] is network.graph.components[1][1].weight
    torch.optim.SGD(groups, lr=0.1)


def test_dropout_only_in_training():
    factory = InceptionV4Factory(UntrainedWeightsLoader())
    weights, bias = tail_weights(4)
    x = torch.randn(2, 1536, 8, 8)

    network = factory.create_inception_v4_tail(NetworkContext(training=True), 4, weights, bias,
                                               dropout_keep_probability=0.5)
    assert network.training
    assert network.summary()["dropout"] == 1

    network.eval()
    assert torch.equal(network(x), network(x))


def test_decode_predictions():
    labels = InceptionV4Labels(["cat", "dog", "fish"])

    decoded = labels.decode_predictions(torch.tensor([[0.1, 0.7, 0.2], [0.5, 0.2, 0.3]]), top=2)

    assert [[label for label, _ in row] for row in decoded] == [["dog", "fish"], ["cat", "fish"]]
    assert decoded[0][0][1] == pytest.approx(0.7)
    with pytest.raises(ValueError):
        labels.decode_predictions(torch.zeros(1, 4))
