from dataclasses import dataclass
from typing import List


@dataclass(frozen=True)
class MaterialPhase:
    """A candidate phase offered to the model."""
    name: str
    crystal_structure: str


def get_material_phases(peak_data: List[float]) -> List[MaterialPhase]:
    # TODO: query a real phase database (e.g. COD) by peak positions instead of the fixed pair.
    return [
        MaterialPhase(name="Silicon Dioxide", crystal_structure="Cubic"),
        MaterialPhase(name="Aluminum Oxide", crystal_structure="Hexagonal"),
    ]
