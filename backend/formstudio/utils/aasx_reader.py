"""
Tolerant AASX reader.

Published template packages occasionally reference supplementary files
(thumbnails, PDFs) that are missing from the archive. This reader skips
those references so the submodel itself can still be read.
"""

import logging

from basyx.aas import model
from basyx.aas.adapter import aasx
from basyx.aas.util import traversal

logger = logging.getLogger(__name__)


def is_external_uri(value: str) -> bool:
    """True for absolute URIs and network-path references."""
    return value.startswith("//") or ":" in value.split("/")[0]


class SafeAASXReader(aasx.AASXReader):
    """AASXReader that skips missing supplementary files instead of raising."""

    def _collect_supplementary_files(
        self,
        part_name: str,
        submodel: model.Submodel,
        file_store: "aasx.AbstractSupplementaryFileContainer",
    ) -> None:
        for element in traversal.walk_submodel(submodel):
            if not isinstance(element, model.File) or element.value is None:
                continue
            if is_external_uri(element.value):
                continue

            absolute_name = aasx.pyecma376_2.package_model.part_realpath(
                element.value,
                part_name,
            )
            try:
                with self.reader.open_part(absolute_name) as part:
                    final_name = file_store.add_file(
                        absolute_name,
                        part,
                        self.reader.get_content_type(absolute_name),
                    )
            except KeyError:
                logger.warning(
                    "Supplementary file missing in AASX package: %s (referenced by %s)",
                    absolute_name,
                    element.value,
                )
                continue

            element.value = final_name
