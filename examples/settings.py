import attrs

import propcodec


@attrs.define
class Settings:
    tempo: float
    tracks: propcodec.U8
    projectname: str
    outfile: str | None = None
    mode2: bool = True


settings = propcodec.loads(
    """
    # UST-like settings
    tempo=120
    tracks=1
    projectname=konnichiwa sekai
    outfile=
    """,
    Settings,
)
print(settings)

print(propcodec.dumps(settings))
