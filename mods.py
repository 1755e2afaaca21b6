from dataclasses import dataclass
from enum import Enum


class Mod(Enum):
    NM = "NM"
    DT = "DT"
    NC = "NC"
    HT = "HT"
    DC = "DC"
    EZ = "EZ"
    HR = "HR"
    CL = "CL"
    NF = "NF"


_RATES = {
    Mod.DT: 1.5,
    Mod.NC: 1.5,
    Mod.HT: 0.75,
    Mod.DC: 0.75,
}


@dataclass(frozen=True)
class ModSettings:
    """The parts of a mod combination that change timing or scoring."""
    rate: float = 1.0
    hard_rock: bool = False
    easy: bool = False
    classic: bool = False
    no_fail: bool = False

    @classmethod
    def from_mods(cls, mods):
        """Accepts ``Mod`` members or acronyms, e.g. ``["DT", "HR"]`` or ``"DTHR"``."""
        if isinstance(mods, str):
            mods = [mods[i:i + 2] for i in range(0, len(mods), 2)]
        parsed = set()
        for m in mods:
            parsed.add(m if isinstance(m, Mod) else Mod(str(m).upper()))

        rates = {_RATES[m] for m in parsed if m in _RATES}
        if len(rates) > 1:
            raise ValueError("DT/NC and HT/DC cannot be combined")
        if Mod.EZ in parsed and Mod.HR in parsed:
            raise ValueError("EZ and HR cannot be combined")

        return cls(
            rate=rates.pop() if rates else 1.0,
            hard_rock=Mod.HR in parsed,
            easy=Mod.EZ in parsed,
            classic=Mod.CL in parsed,
            no_fail=Mod.NF in parsed,
        )

    @property
    def acronym(self):
        parts = []
        if self.rate > 1:
            parts.append("DT")
        elif self.rate < 1:
            parts.append("HT")
        if self.easy:
            parts.append("EZ")
        if self.hard_rock:
            parts.append("HR")
        if self.classic:
            parts.append("CL")
        if self.no_fail:
            parts.append("NF")
        return "".join(parts) or "NM"


NO_MODS = ModSettings()
