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

"""Connectivity of the subdivision arena.

Faces are linked to their edge neighbors when the control mesh is built, and
every rule evaluation walks the ring of faces around a pivot vertex.
"""

from quadsubd.mesh.neighbors._adjacency import Adjacency, build_adjacency_from_lists
from quadsubd.mesh.neighbors._face_neighbors import link_face_neighbors, link_faces
from quadsubd.mesh.neighbors._ring import (
    Ring,
    build_ring,
    build_sector_ring,
    diagonal_point,
    face_centroid,
    ring_points,
)
