"""
Caste vocabulary for the Republic Engine

Each caste owns one work queue and one examined namespace:
- REASONER (philosopher kings): hypotheses and judgements
- INVESTIGATOR (warriors): forensics, alerts, patrols
- PRICER (artisans): prediction markets and cross-reference discovery
"""
from enum import Enum
from typing import NamedTuple


class Caste(Enum):
    """Worker role. Values double as log/status labels."""
    REASONER = "reasoner"
    INVESTIGATOR = "investigator"
    PRICER = "pricer"


class ExaminedKey(NamedTuple):
    """Typed (caste, node id) marker: this caste already processed this node."""
    caste: Caste
    node_id: str
