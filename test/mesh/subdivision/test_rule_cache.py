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

"""Tests for the coefficient-rule cache."""

import math

from quadsubd.mesh import RuleKind
from quadsubd.mesh.subdivision import ConvexCornerQuadRule, InteriorQuadRule, RuleCache


class TestRuleCache:
    def test_lazy_construction_and_reuse(self) -> None:
        cache = RuleCache()
        assert len(cache) == 0
        rule = cache.get(RuleKind.INTERIOR, 5)
        assert isinstance(rule, InteriorQuadRule)
        assert cache.get(RuleKind.INTERIOR, 5) is rule
        assert (cache.hits, cache.misses) == (1, 1)

    def test_variants_do_not_share_slots(self) -> None:
        cache = RuleCache()
        interior = cache.get(RuleKind.INTERIOR, 3)
        crease = cache.get(RuleKind.CREASE, 3)
        assert interior is not crease
        assert len(cache) == 2

    def test_corner_rebuilt_when_theta_changes(self) -> None:
        cache = RuleCache()
        right = cache.get(RuleKind.CONVEX_CORNER, 2, math.pi / 2)
        sharp = cache.get(RuleKind.CONVEX_CORNER, 2, math.pi / 3)
        assert isinstance(sharp, ConvexCornerQuadRule)
        assert sharp is not right
        assert sharp.theta == math.pi / 3
        assert cache.misses == 2
        assert len(cache) == 1
        assert cache.get(RuleKind.CONVEX_CORNER, 2, math.pi / 3) is sharp

    def test_theta_ignored_for_smooth_rules(self) -> None:
        cache = RuleCache()
        rule = cache.get(RuleKind.CREASE, 2, 1.0)
        assert rule.theta is None
        assert cache.get(RuleKind.CREASE, 2, 2.0) is rule

    def test_reset(self) -> None:
        cache = RuleCache()
        rule = cache.get(RuleKind.CREASE, 2)
        cache.reset()
        assert len(cache) == 0
        assert cache.get(RuleKind.CREASE, 2) is not rule
