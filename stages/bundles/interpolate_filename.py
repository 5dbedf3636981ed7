from __future__ import annotations

from typing import Any, Dict

from pluggable import Context, ValidationError, sync
from pluggable.contract_store import core_contracts


def _interpolate_filename(ctx: Context, bundle: Dict[str, Any]) -> Dict[str, Any]:
    """
    Resolve hash placeholders in a bundle's destination pattern (pure; input untouched).
    bundle:
      - destination_pattern: string with [setHash], [bundleHash], [primaryModuleHash]
      - set_identifier, bundle_content_hash: strings
      - primary_module: optional {content_hash}
    Each placeholder is replaced at its first occurrence only.
    """
    errors = core_contracts().validate("bundle.schema.json", bundle)
    if errors:
        raise ValidationError(code="bundle.invalid", message="Bundle descriptor is invalid", data={"errors": errors})

    dest = (
        bundle["destination_pattern"]
        .replace("[setHash]", bundle["set_identifier"], 1)
        .replace("[bundleHash]", bundle["bundle_content_hash"], 1)
    )
    primary_module = bundle.get("primary_module")
    if primary_module is not None:
        dest = dest.replace("[primaryModuleHash]", primary_module["content_hash"], 1)

    return {**bundle, "destination_pattern": dest}


interpolate_filename = sync(_interpolate_filename, name="interpolate_filename")
