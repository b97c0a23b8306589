"""
Loopy Belief Propagation on discrete Bayesian networks, in log-space.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import torch

from .primitives import log_contract, normalize_log_probas, safe_log
from .prob_vector import LogProbVector

logger = logging.getLogger(__name__)

Evidence = Union[Mapping[int, int], Iterable[Tuple[int, int]]]


class CacheState(Enum):
    STALE = "stale"
    CACHED = "cached"


class AggregateCache:
    """Single-slot memo for a node's lambda or pi aggregate."""

    def __init__(self):
        self.state = CacheState.STALE
        self._value: Optional[LogProbVector] = None

    def get_or_compute(self, compute: Callable[[], LogProbVector]) -> LogProbVector:
        """Return a copy of the cached value, computing and storing it if stale."""
        if self.state is CacheState.STALE:
            self._value = compute()
            self.state = CacheState.CACHED
        return self._value.clone()

    def peek_or_compute(self, compute: Callable[[], LogProbVector]) -> LogProbVector:
        """Like :meth:`get_or_compute`, but never stores anything."""
        if self.state is CacheState.CACHED:
            return self._value.clone()
        return compute()

    def invalidate(self) -> None:
        self.state = CacheState.STALE
        self._value = None


@dataclass
class Edge:
    """Adjacency entry: the neighbor's id and the last message it sent here."""

    node: int
    message: LogProbVector


class Node:
    """A discrete variable of the network, owned by :class:`BayesNet`."""

    def __init__(self, parents: List[Edge], log_probas: torch.Tensor):
        """
        Args:
            parents: Incoming pi-message slots, in table axis order
            log_probas: Conditional log-table normalized along axis 0
        """
        self.parents = parents
        self.children: List[Edge] = []
        self.log_probas = log_probas
        self.evidence: Optional[int] = None
        self.lambda_cache = AggregateCache()
        self.pi_cache = AggregateCache()

    @property
    def card(self) -> int:
        return self.log_probas.shape[0]

    def evidence_vec(self) -> LogProbVector:
        if self.evidence is None:
            return LogProbVector.uniform(self.card, dtype=self.log_probas.dtype, device=self.log_probas.device)
        return LogProbVector.deterministic(
            self.card, self.evidence, dtype=self.log_probas.dtype, device=self.log_probas.device
        )

    def compute_lambda(self) -> LogProbVector:
        """Own evidence times every lambda message received from the children."""
        lam = self.evidence_vec()
        for edge in self.children:
            lam.prod(edge.message)
        return lam

    def compute_pi(self) -> LogProbVector:
        """Prior over own values induced by the parents' current pi messages."""
        pi = self.contract_parents()
        assert pi.dim() == 1
        if pi is self.log_probas:
            # a root's prior is its table; never hand out the table itself
            pi = pi.clone()
        return LogProbVector(pi)

    def contract_parents(self, exclude: Optional[int] = None) -> torch.Tensor:
        """
        Contract every parent axis except ``exclude`` against its pi message.

        Axes are looked up by parent id, and consumed from the last parent to
        the first.
        """
        table = self.log_probas
        axis_owners = [edge.node for edge in self.parents]
        for edge in reversed(self.parents):
            if edge.node == exclude:
                continue
            axis = 1 + axis_owners.index(edge.node)
            table = log_contract(table, edge.message.log_probabilities, axis)
            axis_owners.remove(edge.node)
        return table

    def lambda_message(self, parent: int, lam: LogProbVector) -> LogProbVector:
        """Evidence pressure sent to ``parent``, marginalizing out the other parents and this node."""
        table = self.contract_parents(exclude=parent)
        msg = log_contract(table, lam.log_probabilities, 0)
        assert msg.dim() == 1
        msg = LogProbVector(msg)
        msg.renormalize()
        return msg

    def pi_message(self, child: int, pi: LogProbVector) -> LogProbVector:
        """Belief sent to ``child``, excluding what ``child`` itself reported."""
        msg = pi.clone()
        for edge in self.children:
            if edge.node != child:
                msg.prod(edge.message)
        msg.renormalize()
        return msg

    def invalidate(self) -> None:
        self.lambda_cache.invalidate()
        self.pi_cache.invalidate()


class BayesNet:
    """
    Discrete Bayesian network with Loopy Belief Propagation inference.

    Nodes are added one by one, parents first, and are identified by the
    dense integer id returned at creation. Once built, set the evidence,
    call :meth:`reset_state`, then :meth:`step` as many times as wanted and
    read :meth:`beliefs`.
    """

    def __init__(self, dtype=torch.float64, device: Optional[Union[str, torch.device]] = None):
        """
        Args:
            dtype: Floating point dtype of tables and messages
            device: torch device holding tables and messages
        """
        self.dtype = dtype
        self.device = torch.device(device) if device is not None else None
        self._nodes: List[Node] = []
        self.iterations = 0

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self):
        nedges = sum(len(node.parents) for node in self._nodes)
        return f"BayesNet(nnodes={len(self._nodes)}, nedges={nedges})"

    def num_nodes(self) -> int:
        """Return number of nodes."""
        return len(self._nodes)

    def cardinality(self, node: int) -> int:
        """Number of values node ``node`` can take."""
        return self._nodes[node].card

    def parents(self, node: int) -> List[int]:
        return [edge.node for edge in self._nodes[node].parents]

    def children(self, node: int) -> List[int]:
        return [edge.node for edge in self._nodes[node].children]

    def _new_message(self, n: int) -> LogProbVector:
        return LogProbVector.uniform(n, dtype=self.dtype, device=self.device)

    def add_node_from_probabilities(self, parents: Sequence[int], probabilities) -> int:
        """
        Add a node from a table of probabilities ``p(x | parents)``.

        For parents ``(p1, ..., pk)`` the table has shape ``(N, N_p1, ..., N_pk)``
        where ``N`` is the number of values of the new node. A node without
        parents takes a 1-D prior. The table does not need to be normalized.

        Args:
            parents: Ids of existing nodes
            probabilities: Non-negative table (tensor, array or nested lists)

        Returns:
            Id of the new node
        """
        probabilities = torch.as_tensor(probabilities, dtype=self.dtype, device=self.device)
        return self.add_node_from_log_probabilities(parents, safe_log(probabilities))

    def add_node_from_log_probabilities(self, parents: Sequence[int], log_probabilities) -> int:
        """
        Add a node from natural-log probabilities.

        Same layout as :meth:`add_node_from_probabilities`. Entries must be
        below +inf; -inf stands for probability zero. Rows are normalized along
        axis 0, so only differences between log-values of the same parent
        configuration matter.

        Raises:
            ValueError: if the table shape does not match the parents
        """
        parents = list(parents)
        log_probas = torch.as_tensor(log_probabilities, dtype=self.dtype, device=self.device).clone()
        shape = tuple(log_probas.shape)
        node_id = len(self._nodes)

        if len(shape) != len(parents) + 1:
            raise ValueError(
                f"Dimensions of log_probas array ({len(shape)}) do not match "
                f"number of parents ({len(parents)}) + 1."
            )
        if shape[0] == 0:
            raise ValueError("A node needs at least one possible value.")
        if len(set(parents)) != len(parents):
            raise ValueError(f"Duplicate parents in {parents}.")
        for axis, (size, parent) in enumerate(zip(shape[1:], parents), start=1):
            if not 0 <= parent < node_id:
                raise ValueError(f"Unknown parent node {parent}; parents must be added first.")
            parent_card = self._nodes[parent].card
            if size != parent_card:
                raise ValueError(
                    f"Dimension {axis} of log_probas array does not match its associated parent "
                    f"number of elements: got {size} but parent {parent} has {parent_card}."
                )

        for parent in parents:
            # lambda messages range over the receiving parent's values
            parent_node = self._nodes[parent]
            parent_node.children.append(Edge(node_id, self._new_message(parent_node.card)))

        normalize_log_probas(log_probas)
        edges = [Edge(parent, self._new_message(self._nodes[parent].card)) for parent in parents]
        self._nodes.append(Node(edges, log_probas))
        logger.debug(f"Added node {node_id} with parents {parents} and table shape {shape}")
        return node_id

    def add_node(self, parents: Sequence[int], log_probabilities) -> int:
        """Alias of :meth:`add_node_from_log_probabilities`."""
        return self.add_node_from_log_probabilities(parents, log_probabilities)

    def set_evidence(self, evidence: Evidence) -> None:
        """
        Replace the evidence of the network.

        Args:
            evidence: ``{node: value}`` or an iterable of ``(node, value)`` pairs.
                Values are not range-checked; an out-of-range value gives that
                node zero probability everywhere.

        Raises:
            ValueError: if a node id is unknown; the previous evidence is kept
        """
        if isinstance(evidence, Mapping):
            evidence = evidence.items()
        observed = [(int(node_id), int(value)) for node_id, value in evidence]
        for node_id, _ in observed:
            if not 0 <= node_id < len(self._nodes):
                raise ValueError(f"Evidence on unknown node {node_id}; the network has {len(self._nodes)} nodes.")

        for node in self._nodes:
            node.evidence = None
        for node_id, value in observed:
            self._nodes[node_id].evidence = value
        logger.debug(f"Evidence set on {len(observed)} node(s): {observed}")

    def reset_state(self) -> None:
        """Reset all messages to uniform and clear caches, to begin a new inference."""
        for node in self._nodes:
            for edge in node.children:
                edge.message.reset()
            for edge in node.parents:
                edge.message.reset()
            node.invalidate()
        self.iterations = 0
        logger.debug("Inference state reset")

    def beliefs(self) -> List[LogProbVector]:
        """
        Current belief of every node, indexed by node id.

        Reads cached aggregates when present but never fills or clears them.
        """
        beliefs = []
        for node in self._nodes:
            belief = node.lambda_cache.peek_or_compute(node.compute_lambda)
            belief.prod(node.pi_cache.peek_or_compute(node.compute_pi))
            belief.renormalize()
            beliefs.append(belief)
        return beliefs

    def marginals(self) -> List[torch.Tensor]:
        """Current beliefs as normalized probability vectors."""
        return [belief.as_probabilities() for belief in self.beliefs()]

    def step(self) -> None:
        """
        Run one synchronous sweep of Loopy Belief Propagation.

        Every message is computed from the messages stored before the call,
        then all of them are written at once. Call it as many times as wanted;
        a common stopping rule is when :meth:`beliefs` stops changing.
        """
        # keyed by (sender, receiver)
        pi_msgs: Dict[Tuple[int, int], LogProbVector] = {}
        lambda_msgs: Dict[Tuple[int, int], LogProbVector] = {}

        for node_id, node in enumerate(self._nodes):
            pi = node.pi_cache.get_or_compute(node.compute_pi)
            pi.prod(node.evidence_vec())
            for edge in node.children:
                pi_msgs[(node_id, edge.node)] = node.pi_message(edge.node, pi)

            lam = node.lambda_cache.get_or_compute(node.compute_lambda)
            for edge in node.parents:
                lambda_msgs[(node_id, edge.node)] = node.lambda_message(edge.node, lam)

            node.invalidate()

        self._commit(pi_msgs, lambda_msgs)
        self.iterations += 1
        logger.debug(
            f"Step {self.iterations}: committed {len(pi_msgs)} pi and {len(lambda_msgs)} lambda messages"
        )

    def _commit(
        self,
        pi_msgs: Dict[Tuple[int, int], LogProbVector],
        lambda_msgs: Dict[Tuple[int, int], LogProbVector],
    ) -> None:
        for (sender, receiver), msg in pi_msgs.items():
            edge = _find_edge(self._nodes[receiver].parents, sender)
            if edge is None:
                raise RuntimeError(
                    f"Message from {sender} to {receiver} who does not recognize its parent."
                )
            edge.message = msg
        for (sender, receiver), msg in lambda_msgs.items():
            edge = _find_edge(self._nodes[receiver].children, sender)
            if edge is None:
                raise RuntimeError(
                    f"Message from {sender} to {receiver} who does not recognize its child."
                )
            edge.message = msg

    def propagate(self, num_steps: int) -> List[LogProbVector]:
        """
        Run ``num_steps`` steps and return the resulting beliefs.

        The message state is not reset first.
        """
        if num_steps < 0:
            raise ValueError(f"num_steps must be non-negative, got {num_steps}.")
        for _ in range(num_steps):
            self.step()
        return self.beliefs()


def _find_edge(edges: List[Edge], node: int) -> Optional[Edge]:
    for edge in edges:
        if edge.node == node:
            return edge
    return None
