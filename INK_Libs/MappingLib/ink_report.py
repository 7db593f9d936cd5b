"""
Printer report listing the inks a job actually needs.
"""

from typing import Iterable, List, Mapping, Sequence, Union

from INK_Libs.ColorLib.ink_models import Ink, MixRule


def final_ink_indices(
    palette: Sequence[Ink],
    restricted: Iterable[int],
    mix_rules: Union[Mapping[int, MixRule], Iterable[MixRule]] = (),
) -> List[int]:
    """Restricted inks followed by any extra inks used by mix rules, without duplicates."""
    rules = mix_rules.values() if isinstance(mix_rules, Mapping) else mix_rules
    used: List[int] = []
    for index in restricted:
        if 0 <= index < len(palette) and index not in used:
            used.append(index)
    for rule in rules:
        for index in rule.ink_indices():
            if 0 <= index < len(palette) and index not in used:
                used.append(index)
    return used


def build_ink_report(
    palette: Sequence[Ink],
    restricted: Iterable[int],
    mix_rules: Union[Mapping[int, MixRule], Iterable[MixRule]] = (),
) -> str:
    """
    Build the plain-text ink list sent to the printer.

    Returns:
        Multi-line string, one numbered hex color per distinct final ink
    """
    hexes: List[str] = []
    for index in final_ink_indices(palette, restricted, mix_rules):
        value = palette[index].color.hex
        if value not in hexes:
            hexes.append(value)

    lines = ["Final inks (after replacements):"]
    lines.extend(f"{number}. {value}" for number, value in enumerate(hexes, start=1))
    return "\n".join(lines)
