"""
AASX packaging for exported submodels.

Serializes a submodel document into an AASX container through the BaSyx
SDK, and reads submodels back out of AASX packages.
"""

import copy
import io
import json
import logging
import zipfile
from io import BytesIO
from typing import Any

from basyx.aas import model
from basyx.aas.adapter import aasx
from basyx.aas.adapter.json import AASToJsonEncoder, read_aas_json_file

from formstudio.schemas.template import ElementKind
from formstudio.utils.aas_json import find_submodel, model_type_name
from formstudio.utils.aasx_reader import SafeAASXReader

logger = logging.getLogger(__name__)

AASX_DATA_PART = "/aasx/data.json"


class AASXPackagingError(ValueError):
    """Raised when a document cannot be packed or a package holds no submodel."""


def strip_list_item_ids(elements: list[dict[str, Any]]) -> None:
    """Remove idShorts of list items in place; list items may not carry one."""
    for element in elements:
        if not isinstance(element, dict):
            continue
        model_type = model_type_name(element)
        if model_type == ElementKind.LIST:
            for item in element.get("value") or []:
                if isinstance(item, dict):
                    item.pop("idShort", None)
            strip_list_item_ids(element.get("value") or [])
        elif model_type == ElementKind.ENTITY:
            strip_list_item_ids(element.get("statements") or [])
        elif model_type == ElementKind.COLLECTION:
            strip_list_item_ids(element.get("value") or [])


class AASXPackager:
    """Service for packing submodels into AASX containers and back."""

    def pack(self, document: dict[str, Any]) -> bytes:
        """
        Pack a Submodel (or the submodel of an Environment) into an AASX.

        Raises:
            AASXPackagingError: If the document holds no valid submodel
        """
        submodel = find_submodel(document)
        if submodel is None:
            raise AASXPackagingError("No Submodel found in document")

        submodel = copy.deepcopy(submodel)
        strip_list_item_ids(submodel.get("submodelElements") or [])
        environment = {"submodels": [submodel]}

        try:
            object_store = read_aas_json_file(
                io.StringIO(json.dumps(environment)), failsafe=False
            )
        except (KeyError, TypeError, ValueError) as e:
            raise AASXPackagingError(f"Submodel cannot be packaged: {e}") from e

        output = BytesIO()
        with aasx.AASXWriter(output) as writer:
            writer.write_all_aas_objects(
                AASX_DATA_PART,
                object_store,
                aasx.DictSupplementaryFileContainer(),
                write_json=True,
            )

        logger.info(f"Packed submodel {submodel.get('idShort')} into AASX")
        return output.getvalue()

    def unpack(self, data: bytes) -> dict[str, Any]:
        """
        Read the first Submodel of an AASX package as AAS JSON.

        Raises:
            AASXPackagingError: If the package holds no submodel
        """
        object_store: model.DictObjectStore[model.Identifiable] = model.DictObjectStore()
        file_store = aasx.DictSupplementaryFileContainer()

        try:
            with SafeAASXReader(BytesIO(data)) as reader:
                reader.read_into(object_store, file_store)
        except (KeyError, ValueError, OSError, zipfile.BadZipFile) as e:
            raise AASXPackagingError(f"Invalid AASX package: {e}") from e

        submodels = [obj for obj in object_store if isinstance(obj, model.Submodel)]
        if not submodels:
            raise AASXPackagingError("No Submodel found in AASX package")
        if len(submodels) > 1:
            logger.debug("AASX package holds %d submodels, using the first", len(submodels))

        return json.loads(json.dumps(submodels[0], cls=AASToJsonEncoder))
