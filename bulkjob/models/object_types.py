"""Canonical registry of the object types the platform exchanges in bulk."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..errors import RegistryError, ValidationError


class ObjectCategory(str, Enum):
    """Which import route an object type takes."""
    PRODUCT_CATALOG = "product_catalog"
    TRANSACTION = "transaction"
    TRANSACTION_HUB = "transaction_hub"


class ObjectType(str, Enum):
    """Object types supported by the bulk endpoints."""
    PRODUCT = "product"
    UOM = "uom"
    PRICE_BOOK = "pricebook"
    PRICE_TAG = "pricetag"
    CREDIT_TYPE = "credittype"
    CREDIT_POOL = "creditpool"
    CREDIT_CONVERSION = "creditconversion"
    PRODUCT_GROUP = "productgroup"
    BUNDLE = "bundle"
    BUNDLE_SUITE = "bundlesuite"
    CUSTOM_SETTING = "customsetting"
    SUBSCRIPTION = "subscription"
    CUSTOMER = "customer"
    ORDER = "order"
    USAGE = "usage"
    INVOICE = "invoice"
    CREDIT_MEMO = "creditmemo"
    TRANSACTION_HUB = "transactionhub"


@dataclass(frozen=True)
class ObjectTypeDefinition:
    """How one object type is named on each side of the API."""
    object_type: ObjectType
    api_name: str
    upload_field: str
    category: ObjectCategory

    @property
    def name(self) -> str:
        return self.object_type.value

    @property
    def is_product_catalog(self) -> bool:
        return self.category == ObjectCategory.PRODUCT_CATALOG

    @property
    def is_transaction_hub(self) -> bool:
        return self.category == ObjectCategory.TRANSACTION_HUB

    def matches(self, name: str) -> bool:
        """Check if a type name or API name refers to this type (case-insensitive)."""
        candidate = name.strip().lower()
        return candidate in (self.name, self.api_name.lower())


_PC = ObjectCategory.PRODUCT_CATALOG
_TX = ObjectCategory.TRANSACTION
_HUB = ObjectCategory.TRANSACTION_HUB

# Upload field names are part of the import contract and are listed
# explicitly, never derived from the type name. Transaction hub records are
# posted as a JSON body, so their field name is never sent.
DEFINITIONS: Tuple[ObjectTypeDefinition, ...] = (
    ObjectTypeDefinition(ObjectType.PRODUCT, "Product", "product", _PC),
    ObjectTypeDefinition(ObjectType.UOM, "UOM", "uom", _PC),
    ObjectTypeDefinition(ObjectType.PRICE_BOOK, "PriceBook", "price-book", _PC),
    ObjectTypeDefinition(ObjectType.PRICE_TAG, "PriceTag", "price-tag", _PC),
    ObjectTypeDefinition(ObjectType.CREDIT_TYPE, "CreditType", "credit-type", _PC),
    ObjectTypeDefinition(ObjectType.CREDIT_POOL, "CreditPool", "credit-pool", _PC),
    ObjectTypeDefinition(ObjectType.CREDIT_CONVERSION, "CreditConversion", "credit-conversion", _PC),
    ObjectTypeDefinition(ObjectType.PRODUCT_GROUP, "ProductGroup", "product-group", _PC),
    ObjectTypeDefinition(ObjectType.BUNDLE, "Bundle", "bundle", _PC),
    ObjectTypeDefinition(ObjectType.BUNDLE_SUITE, "BundleSuite", "bundle-suite", _PC),
    ObjectTypeDefinition(ObjectType.CUSTOM_SETTING, "CustomSetting", "custom-setting", _PC),
    ObjectTypeDefinition(ObjectType.SUBSCRIPTION, "Subscription", "subscription", _TX),
    ObjectTypeDefinition(ObjectType.CUSTOMER, "Customer", "customer", _TX),
    ObjectTypeDefinition(ObjectType.ORDER, "Order", "order", _TX),
    ObjectTypeDefinition(ObjectType.USAGE, "Usage", "usage", _TX),
    ObjectTypeDefinition(ObjectType.INVOICE, "Invoice", "invoice", _TX),
    ObjectTypeDefinition(ObjectType.CREDIT_MEMO, "CreditMemo", "creditmemo", _TX),
    ObjectTypeDefinition(ObjectType.TRANSACTION_HUB, "TransactionHub", "transactionhub", _HUB),
)


# Values a transaction hub record may carry in its 'transactiontype' field
TRANSACTION_HUB_TYPES = frozenset({
    "customer", "order", "invoice", "creditmemo", "product", "orderproduct",
    "debitmemo", "invoiceitem", "creditmemoitem", "debitmemoitem",
})


class ObjectTypeRegistry:
    """
    Registry of object type definitions.

    Supports:
    - Case-insensitive lookup by type name or API name
    - Resolving the multipart field name used for uploads
    - Exhaustiveness checking against the ObjectType enum
    """

    def __init__(self, definitions: Tuple[ObjectTypeDefinition, ...] = DEFINITIONS):
        """
        Initialize and validate the registry.

        Args:
            definitions: One definition per ObjectType member

        Raises:
            RegistryError: If a member is missing or defined twice, or if
                two types share an upload field name
        """
        self._by_type: Dict[ObjectType, ObjectTypeDefinition] = {}
        self._by_name: Dict[str, ObjectTypeDefinition] = {}

        for definition in definitions:
            if definition.object_type in self._by_type:
                raise RegistryError(f"Object type defined twice: {definition.name}")
            self._by_type[definition.object_type] = definition

        self.validate()

        for definition in definitions:
            self._by_name[definition.name] = definition
            self._by_name[definition.api_name.lower()] = definition

    def validate(self) -> None:
        """Check that every ObjectType has exactly one definition with a unique upload field."""
        missing = [t.value for t in ObjectType if t not in self._by_type]
        if missing:
            raise RegistryError(f"Object types without a definition: {', '.join(missing)}")

        seen: Dict[str, ObjectType] = {}
        for definition in self._by_type.values():
            owner = seen.get(definition.upload_field)
            if owner is not None:
                raise RegistryError(
                    f"Upload field '{definition.upload_field}' used by both "
                    f"{owner.value} and {definition.name}"
                )
            seen[definition.upload_field] = definition.object_type

    def resolve(self, name: Optional[str]) -> Optional[ObjectTypeDefinition]:
        """Look up a definition by type name or API name, or None if unknown."""
        if not name:
            return None
        return self._by_name.get(name.strip().lower())

    def require(self, name: Optional[str]) -> ObjectTypeDefinition:
        """Look up a definition, raising ValidationError if it is unknown."""
        definition = self.resolve(name)
        if definition is None:
            raise ValidationError(
                f"Unknown object type: {name}. Valid types: {', '.join(self.names())}"
            )
        return definition

    def get(self, object_type: ObjectType) -> ObjectTypeDefinition:
        return self._by_type[object_type]

    def upload_field(self, name: str) -> Optional[str]:
        definition = self.resolve(name)
        return definition.upload_field if definition else None

    def names(self) -> List[str]:
        return [t.value for t in ObjectType]

    def by_category(self, category: ObjectCategory) -> List[ObjectTypeDefinition]:
        return [d for d in self._by_type.values() if d.category == category]


registry = ObjectTypeRegistry()
