"""Command text tokenizer.

A token is one of:
    - a run of non-space, non-quote characters ending on a word boundary
    - a literal colon
    - a double-quoted span, quotes included
    - a single operator character: = ! & | ~ + - * / %

Adjacent word/colon/quoted pieces glue together into one token, so
``name:"two words"`` is a single token. Tokens are returned verbatim.
"""

import re
from typing import List

_ARG_SPLITTER = re.compile(
    r'(?:[^\s"]+\b|:|(")[^"]*("))+|[=!&|~+\-*/%]',
    re.IGNORECASE,
)


def tokenize(text: str) -> List[str]:
    """Split raw message text into tokens.

    Returns an empty list when nothing matches.
    """
    # finditer, not findall: the quote groups would replace the full match
    return [m.group(0) for m in _ARG_SPLITTER.finditer(text)]
