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

import re
import bleach
from typing import Iterable

# Tags kept in text chapter content
CHAPTER_CONTENT_TAGS = frozenset({"p", "br", "b", "i", "u", "strong", "em"})

# Elements whose text is never meant to be shown; dropped with their contents.
# An unclosed one swallows the rest of the input.
NON_TEXT_TAGS = ("script", "style", "textarea", "option", "noscript")
_NON_TEXT_ELEMENT = re.compile(
    r"<(%s)\b[^>]*>(?:.*?</\1\s*>|.*$)" % "|".join(NON_TEXT_TAGS),
    re.IGNORECASE | re.DOTALL,
)


def sanitize(value: str, allowed_tags: Iterable[str] = ()) -> str:
    """
    Removes every tag not in `allowed_tags`, keeping the text inside them.
    Non-text elements (script, style, ...) go with their contents. Attributes are dropped.
    """
    value = _NON_TEXT_ELEMENT.sub("", value)
    return bleach.clean(value, tags=set(allowed_tags), attributes={}, strip=True, strip_comments=True)


def sanitize_text(value: str) -> str:
    """Plain text only."""
    return sanitize(value)


def sanitize_chapter_content(value: str) -> str:
    return sanitize(value, CHAPTER_CONTENT_TAGS)
