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

# Collection (table) names shared by the db backends.
MESSAGES_COLLECTION = "public_messages"
FEEDBACK_COLLECTION = "feedback"
VISITS_COLLECTION = "visits"
REVIEWS_COLLECTION = "reviews"
USERS_COLLECTION = "users"
FAVORITES_COLLECTION = "favorites"

# Input limits.
MAX_RECIPIENT_LENGTH = 50
MAX_MESSAGE_LENGTH = 2000
MAX_FEEDBACK_LENGTH = 2000
MAX_REVIEW_LENGTH = 1000
MAX_DISPLAY_NAME_LENGTH = 50
MAX_SPOTIFY_TRACK_ID_LENGTH = 64
MIN_RATING = 1
MAX_RATING = 5

UNKNOWN_LOCATION = "Unknown"
ANONYMOUS_SENDER_NAME = "Anonymous"
