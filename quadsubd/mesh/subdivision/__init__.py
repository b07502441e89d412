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

"""Piecewise-smooth Catmull-Clark subdivision of polygon control meshes.

The driver refines a :class:`~quadsubd.mesh.control_mesh.SubdivisionMesh` in
place. Vertices with extraordinary valence, on creases or boundaries, at
corners, or carrying a sector are refined with the coefficient rules in
:mod:`._rules`; all others use the uniform Catmull-Clark masks.
"""

from quadsubd.mesh.subdivision._modifiers import blend_normal, flatten_point
from quadsubd.mesh.subdivision._rule_cache import RuleCache
from quadsubd.mesh.subdivision._rules import (
    ConcaveCornerQuadRule,
    ConvexCornerQuadRule,
    CreaseQuadRule,
    InteriorQuadRule,
    QuadCoefficients,
    QuadRule,
    select_rule_kind,
)
from quadsubd.mesh.subdivision.catmull_clark import CatmullClarkSubdivider
from quadsubd.mesh.subdivision.limit import evaluate_limit
