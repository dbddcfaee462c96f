from .accounts import AccountsResource, TransactionsResource
from .base import (
    Archivable,
    BaseResource,
    Cancellable,
    HasPdf,
    Payable,
    PdfResult,
    ResourceConfig,
)
from .catalog import ItemCategoriesResource, TagsResource
from .contacts import ContactsResource
from .edocuments import (
    EArchivesResource,
    EInvoiceInboxesResource,
    EInvoicesResource,
    ESmmsResource,
    SubmitResult,
)
from .expenses import BankFeesResource, EmployeesResource, SalariesResource, TaxesResource
from .inventory import InventoryLevelsResource, ShipmentDocumentsResource, StockMovementsResource
from .invoices import PurchaseBillsResource, SalesInvoicesResource
from .offers import SalesOffersResource
from .products import ProductsResource
from .trackable_jobs import Job, JobResult, JobState, JobStatus, TrackableJobsResource

__all__ = [
    "AccountsResource",
    "Archivable",
    "BankFeesResource",
    "BaseResource",
    "Cancellable",
    "ContactsResource",
    "EArchivesResource",
    "EInvoiceInboxesResource",
    "EInvoicesResource",
    "ESmmsResource",
    "EmployeesResource",
    "HasPdf",
    "InventoryLevelsResource",
    "ItemCategoriesResource",
    "Job",
    "JobResult",
    "JobState",
    "JobStatus",
    "Payable",
    "PdfResult",
    "ProductsResource",
    "PurchaseBillsResource",
    "ResourceConfig",
    "SalariesResource",
    "SalesInvoicesResource",
    "SalesOffersResource",
    "ShipmentDocumentsResource",
    "StockMovementsResource",
    "SubmitResult",
    "TagsResource",
    "TaxesResource",
    "TrackableJobsResource",
    "TransactionsResource",
]
