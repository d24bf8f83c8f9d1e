"""Caches of material instances for single and blended terrain materials."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from voxelterra.common import TerrainMaterial
from voxelterra.mesh import decode_transition_code, transition_code

log = logging.getLogger(__name__)


@dataclass
class MaterialInstance:
    """A base material with texture parameters bound to it."""

    base: Any
    parameters: dict[str, Any] = field(default_factory=dict)


class MaterialCache:
    """Creates material instances on first use and hands back the same ones later."""

    def __init__(
        self,
        material_map: Mapping[int, TerrainMaterial],
        regular_base: Any = None,
        transition_base: Any = None,
    ) -> None:
        self.material_map = dict(material_map)
        self.regular_base = regular_base
        self.transition_base = transition_base
        self._regular: dict[int, MaterialInstance] = {}
        self._transition: dict[int, MaterialInstance] = {}

    def material_info(self, material_id: int) -> TerrainMaterial | None:
        """The material registered under ``material_id``, if any."""
        return self.material_map.get(material_id)

    def regular(self, material_id: int) -> MaterialInstance | None:
        """The instance for one material; None without a regular base material."""
        if self.regular_base is None:
            return None
        instance = self._regular.get(material_id)
        if instance is None:
            log.info("create new regular terrain material instance -> id: %d", material_id)
            instance = MaterialInstance(self.regular_base)
            material = self.material_map.get(material_id)
            if material is not None:
                instance.parameters["TextureDiffuse"] = material.texture_diffuse
                instance.parameters["TextureNormal"] = material.texture_normal
            self._regular[material_id] = instance
        return instance

    def transition(self, material_ids: Iterable[int]) -> MaterialInstance | None:
        """The blended instance for a set of materials; None without a base."""
        if self.transition_base is None:
            return None
        ids = sorted(set(material_ids))
        code = transition_code(ids)
        instance = self._transition.get(code)
        if instance is None:
            slots = decode_transition_code(code)
            log.info(
                "create new transition terrain material instance -> id: %d (%d-%d-%d)",
                code, slots[0], slots[1], slots[2],
            )
            instance = MaterialInstance(self.transition_base)
            for slot, material_id in enumerate(ids):
                material = self.material_map.get(material_id)
                if material is not None:
                    instance.parameters[f"TextureDiffuse{slot}"] = material.texture_diffuse
                    instance.parameters[f"TextureNormal{slot}"] = material.texture_normal
            self._transition[code] = instance
        return instance