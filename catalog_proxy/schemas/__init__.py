from .catalog import CatalogSnapshot, ListingDetail, ShippingInfo, SyncResult, SyncStats
from .webhook import MercadoLibreNotification
