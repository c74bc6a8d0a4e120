"""Read and write Java-properties style `key=value` text as typed Python values.

```python
import attrs
import propcodec

@attrs.define
class Person:
    name: str
    retired: str | None
    score: int

person = propcodec.loads("name=Ada\\nretired=\\nscore=100", Person)
assert propcodec.dumps(person) == "name=Ada\\nretired=\\nscore=100"
```
"""

from .de import Deserializer, MapAccess, from_bytes, from_str, load, loads
from .error import Error
from .read import Read, SliceRead, StrRead
from .ser import (
    CompactFormatter,
    Compound,
    Formatter,
    Serializer,
    dump,
    dumps,
    to_bytes,
    to_string,
    to_writer,
)
from .shape import I8, I16, I32, I64, U8, U16, U32, U64, Char, field, shape_of

__all__ = [
    "Deserializer",
    "MapAccess",
    "from_bytes",
    "from_str",
    "load",
    "loads",
    "Error",
    "Read",
    "SliceRead",
    "StrRead",
    "CompactFormatter",
    "Compound",
    "Formatter",
    "Serializer",
    "dump",
    "dumps",
    "to_bytes",
    "to_string",
    "to_writer",
    "I8",
    "I16",
    "I32",
    "I64",
    "U8",
    "U16",
    "U32",
    "U64",
    "Char",
    "field",
    "shape_of",
]
