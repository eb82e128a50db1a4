# Copyright 2025 Google LLC
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
# ==============================================================================

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class FeedbackType(StrEnum):
    SUGGESTION = "suggestion"
    BUG = "bug"
    OTHER = "other"


@dataclass
class Recipient:
    """A recipient name derived from the messages addressed to it."""

    name: str
    message_count: int
    last_message_timestamp: Optional[float] = None


@dataclass
class Track:
    """A music track as returned to clients by the search proxy."""

    id: str
    name: str
    artist: str
    album_art: str = ""


@dataclass
class GeoLocation:
    country: str
    city: str
