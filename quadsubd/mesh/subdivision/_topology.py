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

"""Child face generation for one level of quad subdivision.

An ``n``-gon ``f`` is split into ``n`` quads around a new center vertex.
Child ``i`` covers corner ``i``::

    child_i = [f[i], mid_i, center, mid_{i - 1}]

where ``mid_e`` is the vertex created on edge ``e``. Child edge 0 is the
first half of parent edge ``i`` and child edge 3 the second half of parent
edge ``i - 1``; both inherit the parent edge's tag. Edge midpoints are shared
with the neighbor across the edge, so each new vertex is created once.
"""

from typing import TYPE_CHECKING

from quadsubd.mesh._types import VertexTag
from quadsubd.mesh.neighbors._face_neighbors import link_faces

if TYPE_CHECKING:
    from quadsubd.mesh.control_mesh import SubdivisionMesh


def generate_child_faces(mesh: "SubdivisionMesh", depth: int) -> list[int]:
    """Create the children of every face at ``depth`` and the vertices they need.

    New vertices exist from ``depth + 1``; their positions are filled in by
    the subdivision driver. Vertex tags follow the topology: a center vertex
    is smooth and special unless the parent is a quad, a midpoint on a tagged
    or boundary edge is a crease vertex, any other midpoint is ordinary.

    Parameters
    ----------
    mesh : SubdivisionMesh
        Mesh whose deepest level is ``depth``.
    depth : int
        Depth of the parent faces.

    Returns
    -------
    list[int]
        Indices of the new faces, in parent order.
    """
    child_depth = depth + 1
    children = []

    ### Pass 1: vertices and child faces
    for face_index in mesh.levels[depth]:
        face = mesh.faces[face_index]
        n = face.n_vertices

        face.center_vertex = mesh.new_vertex(child_depth, VertexTag.SMOOTH, special=n != 4)
        for edge in range(n):
            if face.edge_vertices[edge] is not None:
                continue
            tagged = face.is_tagged_edge(edge)
            mid = mesh.new_vertex(
                child_depth,
                VertexTag.CREASE if tagged else VertexTag.SMOOTH,
                special=tagged,
            )
            face.edge_vertices[edge] = mid
            neighbor = face.neighbors[edge]
            if neighbor is not None:
                mesh.faces[neighbor].edge_vertices[face.neighbor_edges[edge]] = mid

        face_children = []
        for corner in range(n):
            previous = (corner - 1) % n
            child = mesh.new_face(
                (
                    face.vertices[corner],
                    face.edge_vertices[corner],
                    face.center_vertex,
                    face.edge_vertices[previous],
                ),
                child_depth,
                parent=face_index,
            )
            child.edge_tags[0] = face.edge_tags[corner]
            child.edge_tags[3] = face.edge_tags[previous]
            if corner in face.sectors:
                child.sectors[0] = face.sectors[corner]
            face_children.append(child.index)
        face.children = tuple(face_children)
        children.extend(face_children)

    ### Pass 2: neighbor links
    for face_index in mesh.levels[depth]:
        face = mesh.faces[face_index]
        n = face.n_vertices
        for corner in range(n):
            # Interior links between consecutive children
            link_faces(mesh.faces, face.children[corner], 1, face.children[(corner + 1) % n], 2)

            # Across parent edge `corner`, our first half meets the neighbor's
            # second half of the same edge
            neighbor = face.neighbors[corner]
            if neighbor is None:
                continue
            other = mesh.faces[neighbor]
            other_child = other.children[(face.neighbor_edges[corner] + 1) % other.n_vertices]
            link_faces(mesh.faces, face.children[corner], 0, other_child, 3)

    return children
