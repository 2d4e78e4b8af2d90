import copy
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class ConfigMerger:
    @staticmethod
    def merge(
        base: Dict[str, Any],
        override: Dict[str, Any],
        context_description: str = "ConfigMerge",
        strict_keys: bool = False,
    ) -> Dict[str, Any]:
        """
        Merges an 'override' dictionary into a 'base' dictionary.
        - Dictionaries are merged recursively.
        - Other types in override replace values in base.
        - If strict_keys is True, override keys not in base raise ValueError.
        """
        if not isinstance(base, dict):
            logger.error(
                "[%s] Base for merge is not a dictionary (type: %s). Returning override if dict, else empty.",
                context_description, type(base),
            )
            return copy.deepcopy(override) if isinstance(override, dict) else {}

        if not isinstance(override, dict):
            logger.warning(
                "[%s] Override for merge is not a dictionary (type: %s). Returning base.",
                context_description, type(override),
            )
            return copy.deepcopy(base)

        merged = copy.deepcopy(base)
        for key, override_value in override.items():
            base_value = merged.get(key)

            if key not in merged:
                if strict_keys:
                    raise ValueError(
                        f"[{context_description}] Strict mode: Key '{key}' in override not found in base."
                    )
                merged[key] = copy.deepcopy(override_value)
                logger.debug("[%s] Added new key '%s'", context_description, key)
            elif isinstance(base_value, dict) and isinstance(override_value, dict):
                merged[key] = ConfigMerger.merge(
                    base_value,
                    override_value,
                    context_description=f"{context_description} -> {key}",
                    strict_keys=strict_keys,
                )
            elif base_value != override_value:
                merged[key] = copy.deepcopy(override_value)
                logger.debug(
                    "[%s] Overridden key '%s'. Old: %.80s, New: %.80s",
                    context_description, key, base_value, override_value,
                )

        return merged
