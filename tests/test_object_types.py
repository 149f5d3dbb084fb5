import pytest

from bulkjob.errors import RegistryError, ValidationError
from bulkjob.models.object_types import (
    DEFINITIONS,
    ObjectCategory,
    ObjectType,
    ObjectTypeDefinition,
    ObjectTypeRegistry,
    registry,
)


def test_every_object_type_has_one_definition():
    defined = [d.object_type for d in DEFINITIONS]
    assert sorted(defined) == sorted(ObjectType)
    assert len(set(defined)) == len(defined)


@pytest.mark.parametrize(
    "name,field",
    [
        ("pricebook", "price-book"),
        ("PriceTag", "price-tag"),
        ("credittype", "credit-type"),
        ("creditpool", "credit-pool"),
        ("creditconversion", "credit-conversion"),
        ("productgroup", "product-group"),
        ("bundlesuite", "bundle-suite"),
        ("customsetting", "custom-setting"),
        ("product", "product"),
        ("UOM", "uom"),
        ("creditmemo", "creditmemo"),
    ],
)
def test_upload_field_names(name, field):
    assert registry.upload_field(name) == field


def test_resolve_is_case_insensitive_by_name_or_api_name():
    assert registry.resolve("PRODUCT").object_type == ObjectType.PRODUCT
    assert registry.resolve(" PriceBook ").object_type == ObjectType.PRICE_BOOK
    assert registry.resolve("creditMemo").object_type == ObjectType.CREDIT_MEMO
    assert registry.resolve("widget") is None
    assert registry.resolve("") is None


def test_require_lists_valid_types():
    with pytest.raises(ValidationError) as excinfo:
        registry.require("widget")
    assert "widget" in str(excinfo.value)
    assert "pricebook" in str(excinfo.value)


def test_categories():
    catalog = {d.name for d in registry.by_category(ObjectCategory.PRODUCT_CATALOG)}
    transaction = {d.name for d in registry.by_category(ObjectCategory.TRANSACTION)}
    assert "bundlesuite" in catalog
    assert transaction == {"subscription", "customer", "order", "usage", "invoice", "creditmemo"}
    assert not catalog & transaction

    hub = registry.by_category(ObjectCategory.TRANSACTION_HUB)
    assert [d.name for d in hub] == ["transactionhub"]
    assert hub[0].is_transaction_hub
    assert registry.require("TransactionHub") is hub[0]
    assert not registry.require("order").is_transaction_hub


WITHOUT_CREDIT_MEMO = tuple(d for d in DEFINITIONS if d.object_type != ObjectType.CREDIT_MEMO)


def test_missing_definition_is_rejected():
    with pytest.raises(RegistryError, match="creditmemo"):
        ObjectTypeRegistry(WITHOUT_CREDIT_MEMO)


def test_duplicate_upload_field_is_rejected():
    clash = ObjectTypeDefinition(
        ObjectType.CREDIT_MEMO, "CreditMemo", "invoice", ObjectCategory.TRANSACTION
    )
    with pytest.raises(RegistryError, match="invoice"):
        ObjectTypeRegistry(WITHOUT_CREDIT_MEMO + (clash,))


def test_duplicate_definition_is_rejected():
    with pytest.raises(RegistryError, match="defined twice"):
        ObjectTypeRegistry(DEFINITIONS + (DEFINITIONS[0],))
