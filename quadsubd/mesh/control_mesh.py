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

"""Control-mesh construction and the subdivision mesh container.

:func:`build_control_mesh` turns flat input arrays into a
:class:`SubdivisionMesh`: an arena of :class:`~quadsubd.mesh._model.Face` and
:class:`~quadsubd.mesh._model.Vertex` records with neighbor links, edge tags
and vertex tags already derived. Sector overrides are declared on the mesh
before it is subdivided.
"""

import copy
import logging
import warnings
from collections.abc import Sequence
from typing import TYPE_CHECKING

import torch

from quadsubd.mesh._model import Face, Vertex
from quadsubd.mesh._types import (
    EdgeTag,
    Sector,
    SectorTag,
    VertexFlag,
    VertexTag,
    validate_theta,
)
from quadsubd.mesh.neighbors._adjacency import Adjacency, build_adjacency_from_lists
from quadsubd.mesh.neighbors._face_neighbors import extract_half_edges, link_face_neighbors
from quadsubd.mesh.subdivision._rules import select_rule_kind
from quadsubd.mesh.utilities._edge_lookup import find_edges_in_reference
from quadsubd.mesh.utilities._errors import ConfigurationError

if TYPE_CHECKING:
    from quadsubd.mesh.subdivision.catmull_clark import CatmullClarkSubdivider

logger = logging.getLogger(__name__)


class SubdivisionMesh:
    """Polygon mesh refined in place, one depth at a time.

    Depth 0 holds the control mesh. Every call to :meth:`subdivide` appends
    the faces of new depths to :attr:`levels` and a position per depth to
    each vertex. Vertex indices are assigned in creation order, so the
    vertices present at depth ``d`` are exactly ``range(n_vertices_at(d))``.

    Parameters
    ----------
    vertices : list[Vertex]
        Control vertices, ``vertices[i].index == i``.
    faces : list[Face]
        Control faces, linked and tagged, ``faces[i].index == i``.
    incidence : dict[int, list[tuple[int, int]]]
        ``(face, corner)`` pairs of every control vertex.
    dtype : torch.dtype
        Floating dtype of every stored position.
    """

    def __init__(
        self,
        vertices: list[Vertex],
        faces: list[Face],
        incidence: dict[int, list[tuple[int, int]]],
        dtype: torch.dtype,
    ):
        self.vertices = vertices
        self._dtype = dtype
        self.faces = faces
        self.levels: list[list[int]] = [[face.index for face in faces]]
        self.incidence = incidence
        self.isolated_vertices = [v.index for v in vertices if v.index not in incidence]
        self._subdivider: "CatmullClarkSubdivider | None" = None

    ### Arena growth

    def new_vertex(self, depth: int, tag: VertexTag = VertexTag.SMOOTH, special: bool = False) -> int:
        index = len(self.vertices)
        self.vertices.append(Vertex(index=index, creation_depth=depth, tag=tag, special=special))
        return index

    def new_face(self, vertices: tuple[int, ...], depth: int, parent: int | None = None) -> Face:
        face = Face(index=len(self.faces), vertices=vertices, depth=depth, parent=parent)
        self.faces.append(face)
        return face

    def truncate(self, depth: int, n_faces: int, n_vertices: int) -> None:
        """Discard everything a failed refinement of ``depth`` created."""
        del self.faces[n_faces:]
        del self.vertices[n_vertices:]
        for face_index in self.levels[depth]:
            face = self.faces[face_index]
            face.children = None
            face.center_vertex = None
            face.edge_vertices = [None] * face.n_vertices
        for vertex in self.vertices:
            del vertex.positions[depth + 1 - vertex.creation_depth :]

    ### Sectors

    def _check_corner(self, face: int, local_vertex: int) -> Face:
        n_control = len(self.levels[0])
        if not 0 <= face < n_control:
            raise IndexError(f"Face index out of range: {face=}, control mesh has {n_control} faces")
        record = self.faces[face]
        if not 0 <= local_vertex < record.n_vertices:
            raise IndexError(
                f"Local vertex index out of range: {local_vertex=}, face {face} has "
                f"{record.n_vertices} vertices"
            )
        return record

    def add_sector(
        self,
        face: int,
        local_vertex: int,
        tag: SectorTag = SectorTag.UNTAGGED,
        flatness: float | None = None,
        theta: float | None = None,
        normal: Sequence[float] | torch.Tensor | None = None,
        normal_blend: float | None = None,
    ) -> Sector:
        """Attach a shape override to corner ``local_vertex`` of control face ``face``.

        A sector applies to the whole fan of faces between the tagged edges
        around the vertex; declaring it on one face of the fan is enough.
        Declaring a second sector on the same corner replaces the first.

        Parameters
        ----------
        face : int
            Control face index.
        local_vertex : int
            Corner of ``face``.
        tag : SectorTag
            UNTAGGED for smooth and crease vertices, CONVEX or CONCAVE for
            corner vertices.
        flatness : float or None
            Blend in [0, 1] toward the tangent plane; None leaves it unset.
        theta : float or None
            Opening angle of corner sectors, required for CONVEX and CONCAVE.
        normal : sequence of 3 floats, torch.Tensor, or None
            Target limit normal; normalized on storage.
        normal_blend : float or None
            Blend in [0, 1] toward ``normal``; required with ``normal``.

        Returns
        -------
        Sector
            The stored sector.

        Raises
        ------
        IndexError
            If ``face`` or ``local_vertex`` is out of range.
        RuleLookupError
            If the sector tag does not fit the vertex (e.g. UNTAGGED at a corner).
        ConfigurationError
            For out-of-range blend factors, a missing or invalid theta, or
            when the mesh has already been subdivided.
        """
        record = self._check_corner(face, local_vertex)
        if self.depth > 0:
            raise ConfigurationError(
                f"Sectors must be declared before subdivision, mesh is at depth {self.depth}"
            )

        sector = Sector(
            tag=tag,
            flatness=flatness,
            theta=theta,
            normal=normal,
            normal_blend=normal_blend,
        )
        vertex = self.vertices[record.vertices[local_vertex]]
        kind = select_rule_kind(vertex.tag, sector.tag)
        if kind.is_corner:
            if theta is None:
                raise ConfigurationError(
                    f"{sector.tag.name} sectors need an opening angle theta, "
                    f"got {theta=} at face {face}, vertex {local_vertex}"
                )
            validate_theta(kind, theta)

        record.sectors[local_vertex] = sector
        return sector

    def remove_sector(self, face: int, local_vertex: int) -> None:
        """Remove the sector of a control face corner; no-op when there is none."""
        record = self._check_corner(face, local_vertex)
        if self.depth > 0:
            raise ConfigurationError(
                f"Sectors must be changed before subdivision, mesh is at depth {self.depth}"
            )
        record.sectors.pop(local_vertex, None)

    ### Subdivision

    def subdivide(self, levels: int, config: dict | None = None) -> "SubdivisionMesh":
        """Refine the mesh until it reaches depth ``levels``.

        The driver, and with it the coefficient-rule cache, is kept across
        calls; passing ``config`` replaces it.
        """
        from quadsubd.mesh.subdivision.catmull_clark import CatmullClarkSubdivider

        if self._subdivider is None or config is not None:
            self._subdivider = CatmullClarkSubdivider(self, config)
        return self._subdivider.subdivide(levels)

    def clone(self) -> "SubdivisionMesh":
        """Deep copy of the mesh, without the attached driver."""
        subdivider, self._subdivider = self._subdivider, None
        try:
            return copy.deepcopy(self)
        finally:
            self._subdivider = subdivider

    ### Read-back

    @property
    def depth(self) -> int:
        """Deepest completed subdivision depth."""
        return len(self.levels) - 1

    @property
    def dtype(self) -> torch.dtype:
        return self._dtype

    def _check_depth(self, depth: int | None) -> int:
        if depth is None:
            return self.depth
        if not 0 <= depth <= self.depth:
            raise IndexError(f"Depth out of range: {depth=}, mesh has depths 0..{self.depth}")
        return depth

    def faces_at(self, depth: int | None = None) -> list[Face]:
        depth = self._check_depth(depth)
        return [self.faces[i] for i in self.levels[depth]]

    def n_vertices_at(self, depth: int | None = None) -> int:
        depth = self._check_depth(depth)
        count = 0
        for vertex in self.vertices:
            if vertex.creation_depth > depth:
                break
            count += 1
        return count

    def position(self, vertex: int, depth: int | None = None) -> torch.Tensor:
        return self.vertices[vertex].position(self._check_depth(depth))

    def points(self, depth: int | None = None) -> torch.Tensor:
        """Vertex positions at ``depth`` (default: deepest), shape (n_vertices, 3)."""
        depth = self._check_depth(depth)
        count = self.n_vertices_at(depth)
        if count == 0:
            return torch.empty((0, 3), dtype=self.dtype)
        return torch.stack([self.vertices[i].position(depth) for i in range(count)])

    def face_vertices(self, depth: int | None = None) -> Adjacency:
        """Face-to-vertex connectivity at ``depth`` as a ragged Adjacency."""
        return build_adjacency_from_lists([face.vertices for face in self.faces_at(depth)])

    def quad_indices(self, depth: int | None = None) -> torch.Tensor:
        """Face-to-vertex connectivity of an all-quad depth, shape (n_faces, 4).

        Raises
        ------
        ValueError
            If a face at ``depth`` is not a quad (only possible at depth 0).
        """
        faces = self.faces_at(depth)
        if any(face.n_vertices != 4 for face in faces):
            raise ValueError(f"Depth {self._check_depth(depth)} contains non-quad faces")
        return torch.tensor([face.vertices for face in faces], dtype=torch.int64).reshape(-1, 4)

    def limit_points(self) -> torch.Tensor:
        """Limit positions of the deepest level's vertices, shape (n_vertices, 3).

        Raises
        ------
        ValueError
            If the limit has not been evaluated at the current depth.
        """
        count = self.n_vertices_at(self.depth)
        limits = [self.vertices[i].limit_position for i in range(count)]
        if any(limit is None for limit in limits):
            raise ValueError(
                "Limit positions are not available; call evaluate_limit() or "
                "subdivide with config={'evaluate_limit': True}"
            )
        return torch.stack(limits)

    def __repr__(self) -> str:
        per_level = ", ".join(str(len(level)) for level in self.levels)
        return (
            f"{type(self).__name__}(depth={self.depth}, "
            f"n_vertices={self.n_vertices_at(self.depth)}, "
            f"faces_per_depth=[{per_level}], dtype={self.dtype})"
        )


def _tag_flagged_edges(faces: list[Face], flags: list[VertexFlag]) -> None:
    tagging = VertexFlag.CREASE | VertexFlag.CORNER
    for face in faces:
        n = face.n_vertices
        for edge in range(n):
            a, b = face.vertices[edge], face.vertices[(edge + 1) % n]
            if flags[a] & tagging and flags[b] & tagging:
                face.edge_tags[edge] = EdgeTag.CREASE


def _tag_explicit_edges(faces: list[Face], crease_edges: torch.Tensor) -> None:
    half_edges, owners = extract_half_edges(faces)
    found, matches = find_edges_in_reference(half_edges, crease_edges)
    if not matches.all():
        missing = crease_edges[~matches].tolist()
        raise ConfigurationError(f"Crease edges are not edges of the mesh: {missing=}")
    for h in found.tolist():
        face_index, edge = owners[h].tolist()
        face = faces[face_index]
        face.edge_tags[edge] = EdgeTag.CREASE
        if face.neighbors[edge] is not None:
            faces[face.neighbors[edge]].edge_tags[face.neighbor_edges[edge]] = EdgeTag.CREASE


def _classify_vertices(
    vertices: list[Vertex], faces: list[Face], flags: list[VertexFlag]
) -> None:
    """Derive vertex tags from the number of tagged (or boundary) incident edges."""
    tagged_edges: dict[int, set[tuple[int, int]]] = {}
    for face in faces:
        n = face.n_vertices
        for edge in range(n):
            if face.is_tagged_edge(edge):
                a, b = face.vertices[edge], face.vertices[(edge + 1) % n]
                key = (min(a, b), max(a, b))
                tagged_edges.setdefault(a, set()).add(key)
                tagged_edges.setdefault(b, set()).add(key)

    for vertex in vertices:
        count = len(tagged_edges.get(vertex.index, ()))
        if flags[vertex.index] & VertexFlag.CORNER or count >= 3:
            if count < 2:
                raise ConfigurationError(
                    f"Corner vertex {vertex.index} touches {count} tagged or boundary "
                    f"edges; corners need at least two"
                )
            vertex.tag = VertexTag.CORNER
        elif count == 2:
            vertex.tag = VertexTag.CREASE
        else:
            # Zero tagged edges, or one (a dart), subdivide smoothly
            vertex.tag = VertexTag.SMOOTH


def build_control_mesh(
    coordinates: Sequence[float] | torch.Tensor,
    face_vertex_indices: Sequence[int] | torch.Tensor,
    face_vertex_counts: Sequence[int] | torch.Tensor,
    face_count: int | None = None,
    vertex_flags: Sequence[int] | torch.Tensor | None = None,
    crease_edges: Sequence[Sequence[int]] | torch.Tensor | None = None,
    dtype: torch.dtype | None = None,
) -> SubdivisionMesh:
    """Build a :class:`SubdivisionMesh` from flat control-mesh arrays.

    Faces sharing an edge (traversed in opposite directions) are linked as
    neighbors. Edges without a neighbor are boundaries and behave as creases.
    An edge is tagged as a crease when both endpoints carry
    :attr:`VertexFlag.CREASE` or :attr:`VertexFlag.CORNER`, or when it is
    listed in ``crease_edges``.

    Parameters
    ----------
    coordinates : sequence of float or torch.Tensor
        Vertex coordinates, flat ``(3 * n_vertices,)`` or ``(n_vertices, 3)``.
    face_vertex_indices : sequence of int or torch.Tensor
        Concatenated counter-clockwise vertex indices of all faces.
    face_vertex_counts : sequence of int or torch.Tensor
        Number of indices each face consumes, each at least 3.
    face_count : int or None
        Number of faces to read; defaults to ``len(face_vertex_counts)``.
    vertex_flags : sequence of int, torch.Tensor, or None
        Per-vertex :class:`VertexFlag` values; defaults to all NONE.
    crease_edges : sequence of pairs, torch.Tensor, or None
        Additional vertex index pairs to tag as creases.
    dtype : torch.dtype or None
        Floating dtype of positions; defaults to the dtype of a floating
        ``coordinates`` tensor, else ``torch.get_default_dtype()``.

    Returns
    -------
    SubdivisionMesh
        Mesh at depth 0.

    Raises
    ------
    IndexError
        If the counts total exceeds the index array, ``face_count`` exceeds
        the counts array, or a face references a missing vertex.
    ConfigurationError
        For malformed arrays, faces with fewer than 3 or repeated vertices,
        invalid flags, or unknown crease edges.
    TopologyError
        For non-manifold edges or inconsistently oriented faces.

    Examples
    --------
    >>> mesh = build_control_mesh(
    ...     [0, 0, 0, 1, 0, 0, 1, 1, 0, 0, 1, 0], [0, 1, 2, 3], [4]
    ... )
    >>> mesh.subdivide(1).points().shape
    torch.Size([9, 3])
    """
    ### Coordinates
    coordinates = torch.as_tensor(coordinates)
    if dtype is None:
        dtype = coordinates.dtype if coordinates.is_floating_point() else torch.get_default_dtype()
    if coordinates.numel() % 3 != 0:
        raise ConfigurationError(
            f"Coordinates must hold 3 values per vertex, got {coordinates.numel()=}"
        )
    coordinates = coordinates.to(dtype=dtype).reshape(-1, 3)
    n_vertices = len(coordinates)

    ### Face arrays
    indices = torch.as_tensor(face_vertex_indices, dtype=torch.int64).reshape(-1).tolist()
    counts = torch.as_tensor(face_vertex_counts, dtype=torch.int64).reshape(-1).tolist()
    if face_count is None:
        face_count = len(counts)
    if face_count < 0:
        raise ConfigurationError(f"face_count must be non-negative, got {face_count=}")
    if face_count > len(counts):
        raise IndexError(
            f"face_count exceeds the face vertex counts: {face_count=} > {len(counts)=}"
        )
    total = sum(counts[:face_count])
    if total > len(indices):
        raise IndexError(
            f"Face vertex counts total {total} exceeds the {len(indices)} face vertex indices"
        )

    ### Flags
    if vertex_flags is None:
        flags = [VertexFlag.NONE] * n_vertices
    else:
        raw_flags = torch.as_tensor(vertex_flags, dtype=torch.int64).reshape(-1).tolist()
        if len(raw_flags) != n_vertices:
            raise ConfigurationError(
                f"Expected one flag per vertex, got {len(raw_flags)=} for {n_vertices=}"
            )
        valid = int(VertexFlag.CREASE | VertexFlag.CORNER)
        invalid = [f for f in raw_flags if f < 0 or f & ~valid]
        if invalid:
            raise ConfigurationError(f"Unknown vertex flag values: {invalid=}")
        flags = [VertexFlag(f) for f in raw_flags]

    ### Records
    vertices = [
        Vertex(index=i, creation_depth=0, positions=[coordinates[i].clone()])
        for i in range(n_vertices)
    ]
    faces = []
    incidence: dict[int, list[tuple[int, int]]] = {}
    offset = 0
    for face_index in range(face_count):
        n = counts[face_index]
        if n < 3:
            raise ConfigurationError(f"Face {face_index} has {n} vertices; faces need at least 3")
        corner_ids = tuple(indices[offset : offset + n])
        offset += n
        bad = [v for v in corner_ids if not 0 <= v < n_vertices]
        if bad:
            raise IndexError(
                f"Face {face_index} references vertices {bad} outside [0, {n_vertices})"
            )
        if len(set(corner_ids)) != n:
            raise ConfigurationError(f"Face {face_index} repeats a vertex: {corner_ids=}")
        faces.append(Face(index=face_index, vertices=corner_ids))
        for corner, vertex in enumerate(corner_ids):
            incidence.setdefault(vertex, []).append((face_index, corner))

    ### Topology
    n_boundary = link_face_neighbors(faces)
    _tag_flagged_edges(faces, flags)
    if crease_edges is not None:
        crease_edges = torch.as_tensor(crease_edges, dtype=torch.int64).reshape(-1, 2)
        _tag_explicit_edges(faces, crease_edges)
    _classify_vertices(vertices, faces, flags)

    mesh = SubdivisionMesh(vertices, faces, incidence, dtype)
    if mesh.isolated_vertices:
        warnings.warn(
            f"{len(mesh.isolated_vertices)} vertices are not used by any face; they "
            f"keep their position at every depth.",
            stacklevel=2,
        )
    logger.debug(
        "Built control mesh with %d vertices, %d faces, %d boundary edges",
        n_vertices,
        face_count,
        n_boundary,
    )
    return mesh
