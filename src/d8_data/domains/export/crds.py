"""CRD definitions for data export resources."""

from d8_data.clients.base import CRDDefinition


class DataExportCRDs:
    """Data exporter CRD definitions."""

    DATA_EXPORT = CRDDefinition(
        group="deckhouse.io",
        version="v1alpha1",
        plural="dataexports",
        kind="DataExport",
    )
