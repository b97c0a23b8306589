"""
Rain / sprinkler / wet grass network.

    rain ---> sprinkler
      |          |
      +--> wet <-+

The graph has a loop, so the beliefs are approximate.
"""

import numpy as np

from loopybayesnet import BayesNet


def build_network():
    net = BayesNet()

    # P(not rain) = 0.8, P(rain) = 0.2
    rain = net.add_node(
        [],
        np.log(np.array([0.8, 0.2])),
    )

    # P(not sprinkler | not rain) = 0.60, P(not sprinkler | rain) = 0.99
    # P(    sprinkler | not rain) = 0.40, P(    sprinkler | rain) = 0.01
    sprinkler = net.add_node(
        [rain],
        np.log(np.array([[0.60, 0.99],
                         [0.40, 0.01]])),
    )

    # axis 0 is wet, axis 1 is rain, axis 2 is sprinkler
    wet = net.add_node_from_probabilities(
        [rain, sprinkler],
        np.array([[[1.0, 0.1], [0.2, 0.01]],
                  [[0.0, 0.9], [0.8, 0.99]]]),
    )
    return net, rain, sprinkler, wet


def run_scenario(net, evidence, num_steps):
    net.reset_state()
    net.set_evidence(evidence)
    net.propagate(num_steps)
    return net.marginals()


def main():
    net, rain, sprinkler, wet = build_network()
    scenarios = [
        ("raw marginal probabilities", [], 9),
        ("assuming the grass is wet", [(wet, 1)], 49),
        ("assuming the sprinkler is running", [(sprinkler, 1)], 9),
        ("assuming it rains", [(rain, 1)], 9),
    ]
    for title, evidence, num_steps in scenarios:
        marginals = run_scenario(net, evidence, num_steps)
        print(f"===== {title} =====")
        print(f"    Rain: {marginals[rain].tolist()}")
        print(f"    Sprinkler: {marginals[sprinkler].tolist()}")
        print(f"    Wet: {marginals[wet].tolist()}")
        print()


if __name__ == "__main__":
    main()
