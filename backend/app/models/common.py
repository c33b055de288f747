# Copyright 2025 Antimortine
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

from datetime import datetime, timezone
from typing import Any, Iterable, Mapping
from pydantic import BaseModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """ A simple message response model """
    message: str


def format_validation_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    """Flattens pydantic error dicts into one human readable line."""
    parts = []
    for err in errors:
        msg = str(err.get("msg", "Invalid value"))
        # Messages raised from our own validators carry this prefix
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        parts.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return "; ".join(parts) or "Dữ liệu không hợp lệ"
