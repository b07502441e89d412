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

"""Lazily populated, valence-indexed store of coefficient rules."""

import logging

from quadsubd.mesh._types import RuleKind
from quadsubd.mesh.subdivision._rules import RULE_CLASSES, QuadRule

logger = logging.getLogger(__name__)


class RuleCache:
    """Memoize :class:`QuadRule` instances per variant and valence.

    Each variant keeps one slot per valence. Corner rules also depend on the
    sector opening angle, so a cached corner rule whose ``theta`` differs from
    the request is rebuilt and replaces the slot.

    Examples
    --------
    >>> cache = RuleCache()
    >>> rule = cache.get(RuleKind.CREASE, 3)
    >>> cache.get(RuleKind.CREASE, 3) is rule
    True
    >>> cache.hits, cache.misses
    (1, 1)
    """

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self._slots: dict[RuleKind, dict[int, QuadRule]] = {}
        self.reset()

    def reset(self) -> None:
        """Drop every cached rule."""
        self._slots = {kind: {} for kind in RuleKind}

    def __len__(self) -> int:
        return sum(len(slot) for slot in self._slots.values())

    def get(self, kind: RuleKind, valence: int, theta: float | None = None) -> QuadRule:
        """Return the rule for ``kind`` at ``valence`` (and ``theta`` for corners)."""
        slot = self._slots[kind]
        rule = slot.get(valence)
        if rule is not None and (not kind.is_corner or rule.theta == theta):
            self.hits += 1
            return rule

        self.misses += 1
        rule = RULE_CLASSES[kind](valence, theta if kind.is_corner else None)
        logger.debug("Built %r", rule)
        slot[valence] = rule
        return rule
