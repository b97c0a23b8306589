"""
Weighing the evidence about the shape of the Earth.

Plausibilities are written as base-10 log-odds between two hypotheses:
5 means very much in favor, 0 undecided, -5 very much against. The network
works with natural logarithms, so tables are multiplied by ln(10) on the way
in and beliefs divided by it on the way out.
"""

import math

import numpy as np

from loopybayesnet import BayesNet

LOG10 = math.log(10.0)


def build_network():
    net = BayesNet()

    # 0 = round, 1 = flat; no prior preference
    flat = net.add_node_from_log_probabilities([], np.array([0.0, 0.0]))

    # a conspiracy hiding a flat Earth: pointless if round, unlikely if flat
    conspiracy = net.add_node_from_log_probabilities(
        [flat],
        np.array([[0.0, 0.0],
                  [-5.0, -2.0]]) * LOG10,
    )

    # the Earth looks flat from the ground either way
    looks_flat = net.add_node_from_log_probabilities(
        [flat],
        np.array([[0.0, 0.0],
                  [3.0, 5.0]]) * LOG10,
    )

    # the horizon is natural for a round Earth, unexplained for a flat one
    horizon = net.add_node_from_log_probabilities(
        [flat],
        np.array([[0.0, 0.0],
                  [5.0, 0.0]]) * LOG10,
    )

    # photos from space look round; only a conspiracy explains that for a flat Earth
    # axis 1 is flat, axis 2 is conspiracy
    photos = net.add_node_from_log_probabilities(
        [flat, conspiracy],
        np.array([[[0.0, 0.0], [0.0, 0.0]],
                  [[4.0, 4.0], [-4.0, 5.0]]]) * LOG10,
    )

    # big conspiracies tend to leak
    leak = net.add_node_from_log_probabilities(
        [conspiracy],
        np.array([[0.0, 0.0],
                  [-4.0, 3.0]]) * LOG10,
    )

    nodes = {
        "flat": flat,
        "conspiracy": conspiracy,
        "looks_flat": looks_flat,
        "horizon": horizon,
        "photos": photos,
        "leak": leak,
    }
    return net, nodes


def log10_ratios(num_steps=20):
    """Base-10 log-odds of a flat Earth and of the conspiracy given what we see."""
    net, nodes = build_network()
    net.set_evidence([
        (nodes["looks_flat"], 1),
        (nodes["horizon"], 1),
        (nodes["photos"], 1),
        (nodes["leak"], 0),
    ])
    net.reset_state()
    beliefs = net.propagate(num_steps)

    ratios = {}
    for name in ("flat", "conspiracy"):
        log_probas = beliefs[nodes[name]].log_probabilities
        ratios[name] = float(log_probas[1] - log_probas[0]) / LOG10
    return ratios


def main():
    ratios = log10_ratios()
    print("log Evidence ratios (5 = very in favor, 0 = indecisive, -5 = very not in favor):")
    print(f" - flat Earth: {ratios['flat']}")
    print(f" - conspiracy: {ratios['conspiracy']}")


if __name__ == "__main__":
    main()
