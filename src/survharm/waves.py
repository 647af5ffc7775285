"""
Lookup helpers for a collection of waves (a plain list of SurveyWave).
"""

from typing import Iterable, List, Optional

from survharm.model import SurveyWave


class WaveNotFoundError(KeyError):
    """Raised when no wave matches the requested id or filename."""
    pass


def pull_survey(
    waves: Iterable[SurveyWave],
    id: Optional[str] = None,
    filename: Optional[str] = None,
) -> SurveyWave:
    """
    Retrieve one wave by id or by filename.

    Args:
        waves: Wave collection
        id: Wave identifier (checked first)
        filename: File name the wave was read from

    Returns:
        The first matching SurveyWave

    Raises:
        ValueError: If neither id nor filename is given
        WaveNotFoundError: If nothing matches
    """
    if id is None and filename is None:
        raise ValueError("pull_survey needs an id or a filename")

    for wave in waves:
        if id is not None and wave.id == id:
            return wave
        if id is None and wave.filename == filename:
            return wave

    key = f"id '{id}'" if id is not None else f"filename '{filename}'"
    raise WaveNotFoundError(f"No survey wave with {key}")


def wave_ids(waves: Iterable[SurveyWave]) -> List[str]:
    return [wave.id for wave in waves]
