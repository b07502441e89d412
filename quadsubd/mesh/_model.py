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

"""Face and Vertex records of the subdivision arena.

Faces and vertices live in flat lists owned by
:class:`~quadsubd.mesh.control_mesh.SubdivisionMesh` and refer to each other
by integer index. A vertex keeps one position per depth it exists at; a face
keeps its neighbor links, edge tags, sector overrides and, once subdivided,
the indices of its children and of the vertices created on it.
"""

from dataclasses import dataclass, field

import torch

from quadsubd.mesh._types import EdgeTag, Sector, VertexTag


@dataclass(eq=False)
class Vertex:
    """A mesh vertex with an append-only, depth-indexed position history.

    Attributes
    ----------
    index : int
        Position of this vertex in the mesh arena.
    creation_depth : int
        First depth at which the vertex exists.
    positions : list[torch.Tensor]
        ``positions[d - creation_depth]`` is the position at depth ``d``.
    tag : VertexTag
        SMOOTH, CREASE or CORNER.
    special : bool
        True when the vertex needs ring/rule based treatment (extraordinary
        valence, tagged, boundary or carrying a sector).
    normal : torch.Tensor or None
        Primary limit normal, filled by limit evaluation.
    secondary_normal : torch.Tensor or None
        Limit normal of the second sheet at vertices on a crease.
    limit_position : torch.Tensor or None
        Limit position, filled by limit evaluation.
    """

    index: int
    creation_depth: int
    positions: list[torch.Tensor] = field(default_factory=list)
    tag: VertexTag = VertexTag.SMOOTH
    special: bool = False
    normal: torch.Tensor | None = None
    secondary_normal: torch.Tensor | None = None
    limit_position: torch.Tensor | None = None

    @property
    def latest_depth(self) -> int:
        """Deepest depth that has a stored position."""
        return self.creation_depth + len(self.positions) - 1

    def has_position(self, depth: int) -> bool:
        return self.creation_depth <= depth <= self.latest_depth

    def position(self, depth: int) -> torch.Tensor:
        if not self.has_position(depth):
            raise IndexError(
                f"Vertex {self.index} has positions for depths "
                f"[{self.creation_depth}, {self.latest_depth}], got {depth=}"
            )
        return self.positions[depth - self.creation_depth]

    def set_position(self, depth: int, position: torch.Tensor) -> None:
        """Append the position for ``depth``; earlier depths are immutable."""
        expected = self.latest_depth + 1
        if depth != expected:
            raise IndexError(
                f"Vertex {self.index} positions are append-only: next depth is "
                f"{expected}, got {depth=}"
            )
        self.positions.append(position)


@dataclass(eq=False)
class Face:
    """A polygon of the mesh at one depth.

    Edge ``e`` runs from ``vertices[e]`` to ``vertices[(e + 1) % n]``. When
    ``neighbors[e]`` is not None, the same edge is edge ``neighbor_edges[e]``
    of that neighbor, traversed in the opposite direction.

    Attributes
    ----------
    index : int
        Position of this face in the mesh arena.
    vertices : tuple[int, ...]
        Vertex indices in counter-clockwise order.
    depth : int
        Subdivision depth the face belongs to.
    neighbors : list[int or None]
        Face across each edge, None on a boundary.
    neighbor_edges : list[int or None]
        Edge index of the shared edge on the neighbor.
    edge_tags : list[EdgeTag]
        Crease tag of each edge.
    sectors : dict[int, Sector]
        Sector override per local vertex index.
    parent : int or None
        Face this one was split from.
    children : tuple[int, ...] or None
        Child quads, child ``i`` covering corner ``i``.
    center_vertex : int or None
        Vertex created at the face center.
    edge_vertices : list[int or None]
        Vertex created at the midpoint of each edge.
    """

    index: int
    vertices: tuple[int, ...]
    depth: int = 0
    neighbors: list[int | None] = field(default_factory=list)
    neighbor_edges: list[int | None] = field(default_factory=list)
    edge_tags: list[EdgeTag] = field(default_factory=list)
    sectors: dict[int, Sector] = field(default_factory=dict)
    parent: int | None = None
    children: tuple[int, ...] | None = None
    center_vertex: int | None = None
    edge_vertices: list[int | None] = field(default_factory=list)

    def __post_init__(self):
        n = len(self.vertices)
        if not self.neighbors:
            self.neighbors = [None] * n
        if not self.neighbor_edges:
            self.neighbor_edges = [None] * n
        if not self.edge_tags:
            self.edge_tags = [EdgeTag.UNTAGGED] * n
        if not self.edge_vertices:
            self.edge_vertices = [None] * n

    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    def next_corner(self, corner: int) -> int:
        return (corner + 1) % len(self.vertices)

    def prev_corner(self, corner: int) -> int:
        return (corner - 1) % len(self.vertices)

    def is_tagged_edge(self, edge: int) -> bool:
        """Boundary edges behave as creases."""
        return self.neighbors[edge] is None or self.edge_tags[edge] != EdgeTag.UNTAGGED
