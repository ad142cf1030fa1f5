"""
Partial-order alignment (POA) graph.

A DAG whose nodes carry one residue and a multiplicity (number of threaded
sequences passing through the node) and whose edges carry a traversal
weight. Sequences are aligned to the graph with a global DP over the
topological order and threaded in place; the consensus is the heaviest
path.

The graph is single-writer: do not call ``add_sequence`` on one instance
from several threads at once.
Author: Rowel Facunla
"""

import heapq
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.errors import EmptyInputError, InvalidScoringError
from ..core.scoring import PoaScoring
from ..core.utilities import SequenceLike, as_sequence

logger = logging.getLogger(__name__)

MATCH = 0
DELETE = 1
INSERT = 2


@dataclass
class PoaNode:
    residue: int
    multiplicity: int = 1


class PoaGraph:
    """Partial-order alignment graph built from a first sequence."""

    def __init__(self):
        self._nodes: List[PoaNode] = []
        self._out: List[Dict[int, int]] = []
        self._in: List[Dict[int, int]] = []
        self._order: List[int] = []
        self._n_sequences = 0

    @classmethod
    def from_sequence(cls, seq: SequenceLike) -> 'PoaGraph':
        """Linear chain graph, one node per residue, every edge weight 1."""
        data = as_sequence(seq, "sequence")
        graph = cls()
        prev = None
        for residue in data:
            node = graph._add_node(residue)
            if prev is not None:
                graph._add_edge(prev, node)
            prev = node
        graph._n_sequences = 1
        graph._order = graph._topological_sort()
        return graph

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def n_nodes(self) -> int:
        return len(self._nodes)

    @property
    def n_sequences(self) -> int:
        return self._n_sequences

    @property
    def topological_order(self) -> Tuple[int, ...]:
        return tuple(self._order)

    @property
    def nodes(self) -> Tuple[PoaNode, ...]:
        """Copies of all nodes, indexed by node id."""
        return tuple(PoaNode(n.residue, n.multiplicity) for n in self._nodes)

    def node(self, node_id: int) -> PoaNode:
        n = self._nodes[node_id]
        return PoaNode(n.residue, n.multiplicity)

    def edges(self) -> Dict[Tuple[int, int], int]:
        return {(u, v): w for u, out in enumerate(self._out) for v, w in out.items()}

    def edge_weight(self, u: int, v: int) -> int:
        """Weight of edge u -> v, 0 when absent."""
        return self._out[u].get(v, 0)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def _add_node(self, residue: int) -> int:
        self._nodes.append(PoaNode(residue))
        self._out.append({})
        self._in.append({})
        return len(self._nodes) - 1

    def _add_edge(self, u: int, v: int) -> None:
        weight = self._out[u].get(v, 0) + 1
        self._out[u][v] = weight
        self._in[v][u] = weight

    def _topological_sort(self) -> List[int]:
        """Kahn's algorithm; ready nodes are taken by smallest id."""
        indegree = [len(preds) for preds in self._in]
        ready = [v for v, d in enumerate(indegree) if d == 0]
        heapq.heapify(ready)
        order = []
        while ready:
            u = heapq.heappop(ready)
            order.append(u)
            for v in self._out[u]:
                indegree[v] -= 1
                if indegree[v] == 0:
                    heapq.heappush(ready, v)

        if len(order) != len(self._nodes):
            raise RuntimeError("POA graph contains a cycle")
        return order

    def _align(self, seq: bytes, scoring: PoaScoring) -> List[Tuple[Optional[int], Optional[int]]]:
        """
        Global alignment of ``seq`` to the graph.

        Row 0 is a virtual start node preceding every source; row r (r >= 1)
        is the node at topological position r - 1.

        Returns:
            Path of (node_id or None, seq index or None) steps in order
        """
        n = len(seq)
        gap = scoring.gap_score
        order = self._order
        rank = {v: r for r, v in enumerate(order, start=1)}
        n_rows = len(order) + 1

        H = [[0] * (n + 1) for _ in range(n_rows)]
        back = [[None] * (n + 1) for _ in range(n_rows)]
        for j in range(1, n + 1):
            H[0][j] = j * gap
            back[0][j] = (0, j - 1, INSERT)

        for r, v in enumerate(order, start=1):
            residue = self._nodes[v].residue
            pred_rows = sorted(rank[u] for u in self._in[v]) or [0]
            row = H[r]
            brow = back[r]

            best = None
            for p in pred_rows:
                s = H[p][0] + gap
                if best is None or s > best:
                    best = s
                    brow[0] = (p, 0, DELETE)
            row[0] = best

            for j in range(1, n + 1):
                sub = scoring.score(residue, seq[j - 1])
                best = None
                for p in pred_rows:
                    s = H[p][j - 1] + sub
                    if best is None or s > best:
                        best = s
                        brow[j] = (p, j - 1, MATCH)
                for p in pred_rows:
                    s = H[p][j] + gap
                    if s > best:
                        best = s
                        brow[j] = (p, j, DELETE)
                s = row[j - 1] + gap
                if s > best:
                    best = s
                    brow[j] = (r, j - 1, INSERT)
                row[j] = best

        end_row = None
        for r, v in enumerate(order, start=1):
            if not self._out[v] and (end_row is None or H[r][n] > H[end_row][n]):
                end_row = r

        path = []
        r, j = end_row, n
        while r != 0 or j != 0:
            p, pj, op = back[r][j]
            if op == MATCH:
                path.append((order[r - 1], j - 1))
            elif op == DELETE:
                path.append((order[r - 1], None))
            else:
                path.append((None, j - 1))
            r, j = p, pj

        path.reverse()
        logger.debug(f"Aligned {n} residues to {len(order)}-node graph, score {H[end_row][n]}")
        return path

    def add_sequence(self, seq: SequenceLike, scoring: Optional[PoaScoring] = None) -> None:
        """
        Align ``seq`` to the graph and thread it in.

        Aligned positions (match or substitution) reuse the graph node and
        bump its multiplicity and incoming edge weight; inserted residues
        become new nodes; graph nodes opposite a gap are skipped.
        """
        data = as_sequence(seq, "sequence")
        if scoring is None:
            scoring = PoaScoring()
        elif not isinstance(scoring, PoaScoring):
            raise InvalidScoringError(
                f"POA alignment needs PoaScoring, got {type(scoring).__name__}",
            )

        path = self._align(data, scoring)

        prev = None
        for node, pos in path:
            if pos is None:
                continue
            if node is not None:
                self._nodes[node].multiplicity += 1
                current = node
            else:
                current = self._add_node(data[pos])
            if prev is not None:
                self._add_edge(prev, current)
            prev = current

        self._n_sequences += 1
        self._order = self._topological_sort()

    # ------------------------------------------------------------------
    # Consensus
    # ------------------------------------------------------------------

    def consensus(self) -> bytes:
        """Residues along the path of maximum total edge weight."""
        if not self._nodes:
            raise EmptyInputError("POA graph has no sequences")

        score = {}
        back = {}
        for v in self._order:
            best = 0
            best_pred = None
            for u in sorted(self._in[v]):
                s = score[u] + self._in[v][u]
                if best_pred is None or s > best:
                    best = s
                    best_pred = u
            score[v] = best
            back[v] = best_pred

        end = None
        for v in self._order:
            if end is None or score[v] > score[end]:
                end = v

        out = bytearray()
        while end is not None:
            out.append(self._nodes[end].residue)
            end = back[end]
        out.reverse()
        return bytes(out)


def poa_consensus(sequences: Sequence[SequenceLike], scoring: Optional[PoaScoring] = None) -> bytes:
    """Build a graph from the first sequence, thread the rest, return the consensus."""
    if not sequences:
        raise EmptyInputError(
            "At least one sequence required",
            suggestion="Pass a non-empty list of sequences",
        )
    graph = PoaGraph.from_sequence(sequences[0])
    for seq in sequences[1:]:
        graph.add_sequence(seq, scoring)
    return graph.consensus()


__all__ = [
    'PoaNode',
    'PoaGraph',
    'poa_consensus',
]
