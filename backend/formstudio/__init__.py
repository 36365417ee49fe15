# IDTA Form Studio Backend
"""
IDTA Form Studio Backend

Renders dynamic forms from IDTA Submodel Templates and converts the collected
form values back into AAS Metamodel V3.0 Submodel instances.

Architecture:
- Parser: template document to normalized element tree
- Tree Generator: element tree to renderable UI tree
- Form State: path-addressed values, errors and array item indices
- Exporter/Importer: flat form values to and from Submodel documents
"""

__version__ = "1.0.0"
