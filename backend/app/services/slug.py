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
import logging
import unicodedata

logger = logging.getLogger(__name__)

FALLBACK_SLUG = "truyen"

# NFKD does not decompose these
_SPECIAL_LETTERS = str.maketrans({"đ": "d", "Đ": "d", "ø": "o", "Ø": "o", "ß": "ss", "æ": "ae", "Æ": "ae"})
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify_title(title: str) -> str:
    """
    Builds a lowercase ASCII slug: diacritics removed, runs of anything else
    collapsed to a single hyphen.

    >>> slugify_title("Kiếm Hiệp Truyện")
    'kiem-hiep-truyen'
    """
    slug = title.translate(_SPECIAL_LETTERS).lower()
    slug = unicodedata.normalize("NFKD", slug).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", slug).strip("-")
    return slug or FALLBACK_SLUG


def create_unique_slug(store, title: str) -> str:
    """
    Returns the first of `base`, `base-1`, `base-2`, ... not used by any story.

    This is only a pre-check; the unique index on `slug` still decides when
    two requests race for the same slug.
    """
    base_slug = slugify_title(title)
    slug = base_slug
    counter = 1
    while store.slug_exists(slug):
        slug = f"{base_slug}-{counter}"
        counter += 1
    if slug != base_slug:
        logger.debug(f"Slug '{base_slug}' taken, using '{slug}'")
    return slug
