"""Modification records and typed modification patterns.

Modifications arrive fully resolved (mass shift, target residue or terminus
class, labile flag); nothing here parses modification strings.

A modification pattern maps an *extended position* of a peptide to the
modification placed there:

    0           protein N-terminus
    1           peptide N-terminus
    2..L+1      residues (residue ``r`` of the peptide sits at ``r + 2``)
    L+2         peptide C-terminus
    L+3         protein C-terminus

Fixed patterns may hold several modifications per position, variable
patterns exactly one. Rendering a pattern into an annotated sequence string
is one-way; the engines never read such strings back.

Examples
--------
>>> ox = Modification("Oxidation", ModificationType.RESIDUE, 'M', 15.994915)
>>> render_sequence("PEPMK", {}, {5: ox})
'PEPM(Oxidation)K'
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .constants import MODIFICATION_MASS_EPSILON


class ModificationType(Enum):
    """Where a modification may sit."""
    PROTEIN_N_TERMINUS = "protein_n_terminus"
    PROTEIN_C_TERMINUS = "protein_c_terminus"
    PEPTIDE_N_TERMINUS = "peptide_n_terminus"
    PEPTIDE_C_TERMINUS = "peptide_c_terminus"
    RESIDUE = "residue"


# Terminus types swap when a sequence is reversed into a decoy
_REVERSED_TYPE = {
    ModificationType.PROTEIN_N_TERMINUS: ModificationType.PROTEIN_C_TERMINUS,
    ModificationType.PROTEIN_C_TERMINUS: ModificationType.PROTEIN_N_TERMINUS,
    ModificationType.PEPTIDE_N_TERMINUS: ModificationType.PEPTIDE_C_TERMINUS,
    ModificationType.PEPTIDE_C_TERMINUS: ModificationType.PEPTIDE_N_TERMINUS,
    ModificationType.RESIDUE: ModificationType.RESIDUE,
}


@dataclass(frozen=True)
class Modification:
    """A resolved post-translational modification.

    Attributes
    ----------
    name : str
        Display name, used when rendering sequences
    modification_type : ModificationType
        Terminus class or residue
    target_residue : str or None
        Residue letter the modification needs; None matches any residue
    mass_shift : float
        Monoisotopic mass shift (Da)
    is_labile : bool
        Counted in the precursor mass but lost during fragmentation
    """

    name: str
    modification_type: ModificationType
    target_residue: Optional[str]
    mass_shift: float
    is_labile: bool = False

    def __post_init__(self):
        if self.target_residue is not None:
            if len(self.target_residue) != 1 or not self.target_residue.isupper():
                raise ValueError(
                    f"Modification {self.name} has an invalid target residue: "
                    f"{self.target_residue!r}"
                )

    def targets(self, residue: str) -> bool:
        return self.target_residue is None or self.target_residue == residue

    @property
    def fragment_mass_shift(self) -> float:
        """Mass carried into fragment ions (zero for labile modifications)."""
        return 0.0 if self.is_labile else self.mass_shift

    def oriented(self, is_decoy: bool) -> ModificationType:
        """Terminus class as seen from a possibly reversed sequence."""
        return _REVERSED_TYPE[self.modification_type] if is_decoy else self.modification_type


# Fixed: several per position. Variable: one per position.
FixedModificationMap = Mapping[int, Tuple[Modification, ...]]
VariableModificationMap = Mapping[int, Modification]


class UniqueModificationList:
    """Ordered candidate list that ignores near-duplicate masses.

    Two modifications whose mass shifts differ by less than ``epsilon`` are
    the same choice for enumeration; the first one added is kept.
    """

    def __init__(self, epsilon: float = MODIFICATION_MASS_EPSILON):
        self.epsilon = epsilon
        self._items: List[Modification] = []

    def add(self, modification: Modification) -> bool:
        for existing in self._items:
            if abs(existing.mass_shift - modification.mass_shift) < self.epsilon:
                return False
        self._items.append(modification)
        return True

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __getitem__(self, index: int) -> Modification:
        return self._items[index]

    def as_tuple(self) -> Tuple[Modification, ...]:
        return tuple(self._items)


def total_mass_shift(
    fixed: FixedModificationMap,
    variable: VariableModificationMap,
) -> float:
    """Sum of every fixed and variable mass shift, labile or not."""
    total = 0.0
    for mods in fixed.values():
        for mod in mods:
            total += mod.mass_shift
    for mod in variable.values():
        total += mod.mass_shift
    return total


def fragment_shifts_by_position(
    length: int,
    fixed: FixedModificationMap,
    variable: VariableModificationMap,
) -> List[float]:
    """Non-labile mass shift at every extended position ``0..length+3``."""
    shifts = [0.0] * (length + 4)
    for position, mods in fixed.items():
        for mod in mods:
            shifts[position] += mod.fragment_mass_shift
    for position, mod in variable.items():
        shifts[position] += mod.fragment_mass_shift
    return shifts


def render_sequence(
    base_sequence: str,
    fixed: FixedModificationMap,
    variable: VariableModificationMap,
) -> str:
    """Render a full annotated sequence.

    Fixed modifications render as ``[name]`` and variable ones as ``(name)``,
    each after the residue or terminus they sit on.
    """
    length = len(base_sequence)
    parts: List[str] = []

    def annotate(position: int):
        for mod in fixed.get(position, ()):
            parts.append(f"[{mod.name}]")
        mod = variable.get(position)
        if mod is not None:
            parts.append(f"({mod.name})")

    annotate(0)
    annotate(1)
    for r, residue in enumerate(base_sequence):
        parts.append(residue)
        annotate(r + 2)
    annotate(length + 2)
    annotate(length + 3)
    return "".join(parts)


def index_modifications(modifications: Iterable[Modification]) -> Dict[Modification, int]:
    """1-based slot numbers for modification type tags (0 means none)."""
    slots: Dict[Modification, int] = {}
    for mod in modifications:
        if mod not in slots:
            slots[mod] = len(slots) + 1
    return slots
