from .documents import DocumentMixin, Invoice, PurchaseBill, ProductionExpense, Budget, SalesOrder, PurchaseOrder

__all__ = [
    'DocumentMixin',
    'Invoice', 'PurchaseBill', 'ProductionExpense',
    'Budget', 'SalesOrder', 'PurchaseOrder',
]
