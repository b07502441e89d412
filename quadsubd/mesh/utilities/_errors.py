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

"""Exception types raised by the subdivision engine.

All configuration and topology problems are raised synchronously at the call
that introduced them. Both families subclass :class:`ValueError` so callers that
only care about "bad input" can catch that.
"""


class ConfigurationError(ValueError):
    """Invalid user input: control-mesh arrays, sector values, or config keys."""


class RuleLookupError(ConfigurationError):
    """No coefficient rule exists for a (vertex tag, sector tag) combination."""


class TopologyError(ValueError):
    """The mesh connectivity cannot be traversed consistently.

    Raised for non-manifold edges, inconsistently oriented faces and vertex
    rings that neither close nor reach a boundary.
    """
