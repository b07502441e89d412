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

"""Face-to-face neighbor linking across shared edges.

Two faces are neighbors across an edge when one traverses it as ``(a, b)``
and the other as ``(b, a)``. Linking is done once, at control-mesh build
time, for the depth 0 faces; deeper levels are linked while their children
are created.
"""

from collections.abc import Sequence

import torch

from quadsubd.mesh._model import Face
from quadsubd.mesh.utilities._edge_lookup import find_twin_half_edges
from quadsubd.mesh.utilities._errors import TopologyError


def link_faces(faces: Sequence[Face], face_a: int, edge_a: int, face_b: int, edge_b: int) -> None:
    """Record the mutual neighbor relation between two face edges."""
    faces[face_a].neighbors[edge_a] = face_b
    faces[face_a].neighbor_edges[edge_a] = edge_b
    faces[face_b].neighbors[edge_b] = face_a
    faces[face_b].neighbor_edges[edge_b] = edge_a


def extract_half_edges(faces: Sequence[Face]) -> tuple[torch.Tensor, torch.Tensor]:
    """Return every directed face edge and its (face, edge) origin.

    Returns
    -------
    half_edges : torch.Tensor
        Shape (n_half_edges, 2), int64.
    owners : torch.Tensor
        Shape (n_half_edges, 2), int64. Row ``h`` is ``[face, local_edge]``.
    """
    half_edges = []
    owners = []
    for position, face in enumerate(faces):
        n = face.n_vertices
        for edge in range(n):
            half_edges.append((face.vertices[edge], face.vertices[(edge + 1) % n]))
            owners.append((position, edge))
    return (
        torch.tensor(half_edges, dtype=torch.int64).reshape(-1, 2),
        torch.tensor(owners, dtype=torch.int64).reshape(-1, 2),
    )


def link_face_neighbors(faces: Sequence[Face]) -> int:
    """Link all faces that share an edge.

    Parameters
    ----------
    faces : Sequence[Face]
        Faces to link. ``faces[i].index`` must equal ``i``.

    Returns
    -------
    int
        Number of boundary (unshared) edges.

    Raises
    ------
    TopologyError
        If an edge is used twice in the same direction.
    """
    half_edges, owners = extract_half_edges(faces)
    twins, has_twin = find_twin_half_edges(half_edges)

    ### Link each shared edge once, from the half-edge with the smaller index
    for h in torch.nonzero(has_twin).flatten().tolist():
        t = twins[h].item()
        if t < h:
            continue
        face_a, edge_a = owners[h].tolist()
        face_b, edge_b = owners[t].tolist()
        if face_a == face_b:
            raise TopologyError(
                f"Face {face_a} uses the edge {tuple(half_edges[h].tolist())} twice"
            )
        link_faces(faces, face_a, edge_a, face_b, edge_b)

    return int((~has_twin).sum().item())
