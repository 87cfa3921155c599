"""URL parameter codec for query state."""

from livefilter.url.codec import UrlCodec, decode, encode
from livefilter.url.params import (
    flatten_params,
    indexed_to_list,
    parse_query_string,
    to_query_string,
    unflatten_params,
)

__all__ = [
    "UrlCodec",
    "decode",
    "encode",
    "flatten_params",
    "indexed_to_list",
    "parse_query_string",
    "to_query_string",
    "unflatten_params",
]
