# SPDX-FileCopyrightText: Copyright (c) 2023 - 2026 NVIDIA CORPORATION & AFFILIATES.
# SPDX-FileCopyrightText: All rights reserved.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Edge lookup utilities for matching edges of a polygon control mesh.

Edges are hashed to a single int64 key so that matching reduces to a sort
followed by ``searchsorted``. Undirected lookups canonicalise each edge to
``[min_vertex, max_vertex]``; half-edge twin lookups keep the direction.
"""

import torch

from quadsubd.mesh.utilities._errors import TopologyError


def _edge_hash(edges: torch.Tensor, n_keys: int) -> torch.Tensor:
    """Hash ``(n, 2)`` vertex pairs as ``v0 * n_keys + v1``."""
    return edges[:, 0] * n_keys + edges[:, 1]


def find_edges_in_reference(
    reference_edges: torch.Tensor,
    query_edges: torch.Tensor,
) -> tuple[torch.Tensor, torch.Tensor]:
    """Find indices of query edges within a reference edge set.

    Edge order within each edge is ignored.

    Parameters
    ----------
    reference_edges : torch.Tensor
        Reference edge set, shape (n_ref, 2). Each row is [v0, v1].
    query_edges : torch.Tensor
        Query edges to find, shape (n_query, 2). Each row is [v0, v1].

    Returns
    -------
    indices : torch.Tensor
        Shape (n_query,). For each query edge, the index in reference_edges
        where it was found. For unmatched edges, the value is undefined
        (use the matches mask to filter).
    matches : torch.Tensor
        Shape (n_query,) bool. True if query edge was found in reference_edges.

    Examples
    --------
    >>> ref = torch.tensor([[0, 1], [1, 2], [2, 3]])
    >>> query = torch.tensor([[2, 1], [5, 6], [3, 2]])
    >>> indices, matches = find_edges_in_reference(ref, query)
    >>> matches.tolist()
    [True, False, True]
    """
    device = reference_edges.device

    ### Handle empty edge cases
    if len(reference_edges) == 0 or len(query_edges) == 0:
        return (
            torch.zeros(len(query_edges), dtype=torch.long, device=device),
            torch.zeros(len(query_edges), dtype=torch.bool, device=device),
        )

    ### Canonicalize edges to [min_vertex, max_vertex] order
    sorted_reference, _ = torch.sort(reference_edges, dim=-1)
    sorted_query, _ = torch.sort(query_edges, dim=-1)

    n_keys = max(reference_edges.max().item(), query_edges.max().item()) + 1
    reference_hash = _edge_hash(sorted_reference, n_keys)
    query_hash = _edge_hash(sorted_query, n_keys)

    ### Binary search of the query hashes in the sorted reference hashes
    reference_hash_sorted, sort_indices = torch.sort(reference_hash)
    positions = torch.searchsorted(reference_hash_sorted, query_hash)
    positions = positions.clamp(max=len(reference_hash_sorted) - 1)
    matches = reference_hash_sorted[positions] == query_hash

    return sort_indices[positions], matches


def find_twin_half_edges(half_edges: torch.Tensor) -> tuple[torch.Tensor, torch.Tensor]:
    """Match every directed half-edge ``(a, b)`` with its opposite ``(b, a)``.

    Parameters
    ----------
    half_edges : torch.Tensor
        Shape (n_half_edges, 2), int64. Row ``h`` is the directed edge from
        ``half_edges[h, 0]`` to ``half_edges[h, 1]``.

    Returns
    -------
    twins : torch.Tensor
        Shape (n_half_edges,). Index of the opposite half-edge; undefined where
        ``has_twin`` is False.
    has_twin : torch.Tensor
        Shape (n_half_edges,) bool.

    Raises
    ------
    TopologyError
        If the same directed half-edge occurs twice. This happens when two
        faces share an edge with inconsistent winding, or when more than two
        faces meet at one edge.

    Examples
    --------
    >>> he = torch.tensor([[0, 1], [1, 2], [2, 0], [1, 0], [0, 3], [3, 1]])
    >>> twins, has_twin = find_twin_half_edges(he)
    >>> has_twin.tolist()
    [True, False, False, True, False, False]
    >>> int(twins[0]), int(twins[3])
    (3, 0)
    """
    device = half_edges.device
    n_half_edges = len(half_edges)
    if n_half_edges == 0:
        return (
            torch.zeros(0, dtype=torch.long, device=device),
            torch.zeros(0, dtype=torch.bool, device=device),
        )

    n_keys = half_edges.max().item() + 1
    forward_hash = _edge_hash(half_edges, n_keys)
    reverse_hash = _edge_hash(half_edges.flip(-1), n_keys)

    ### Reject repeated directed half-edges
    unique_hash, counts = torch.unique(forward_hash, return_counts=True)
    if (counts > 1).any():
        bad = unique_hash[counts > 1][0].item()
        edge = (bad // n_keys, bad % n_keys)
        raise TopologyError(
            f"Directed edge {edge=} is used by more than one face. The mesh is "
            f"either non-manifold or its faces are inconsistently oriented."
        )

    forward_sorted, sort_indices = torch.sort(forward_hash)
    positions = torch.searchsorted(forward_sorted, reverse_hash)
    positions = positions.clamp(max=n_half_edges - 1)
    has_twin = forward_sorted[positions] == reverse_hash

    return sort_indices[positions], has_twin
