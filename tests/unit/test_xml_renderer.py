"""Unit tests for XML rendering."""
from decimal import Decimal

from lxml import etree

from marketfeed.feed.xml_renderer import XML_DECLARATION, ordered_fields, render_feed
from marketfeed.models.feed import DeliveryMethod, OfferRecord, TagParam


def parse(xml_text: str) -> etree._Element:
    return etree.fromstring(xml_text.encode("utf-8"))


class TestOrderedFields:
    """Test field ordering inside an offer."""

    def test_identity_fields_lead(self):
        offer = OfferRecord(
            core_fields={
                "brand": "Acme",
                "vendor_code": "V1",
                "id": "ID1",
                "title": "Lamp",
                "code": "C1",
            },
            extra_fields={"color": "red"},
        )

        names = [name for name, _ in ordered_fields(offer)]

        assert names == ["code", "title", "id", "vendor_code", "brand", "color"]

    def test_core_fields_follow_canonical_order(self):
        offer = OfferRecord(core_fields={"description": "d", "weight": "1", "barcode": "123"})

        names = [name for name, _ in ordered_fields(offer)]

        assert names == ["barcode", "weight", "description"]

    def test_extra_fields_keep_insertion_order(self):
        offer = OfferRecord(extra_fields={"zeta": "1", "alpha": "2"})

        assert [name for name, _ in ordered_fields(offer)] == ["zeta", "alpha"]


class TestRenderFeed:
    """Test document serialization."""

    def test_declaration_and_root(self):
        xml_text = render_feed([OfferRecord(core_fields={"code": "C1"})])

        assert xml_text.startswith(XML_DECLARATION)
        root = parse(xml_text)
        assert root.tag == "Market"
        assert root[0].tag == "offers"

    def test_stock_root_tag(self):
        root = parse(render_feed([], root_tag="Stock"))

        assert root.tag == "Stock"
        assert len(root.find("offers")) == 0

    def test_empty_offers_are_skipped(self):
        root = parse(render_feed([OfferRecord(), OfferRecord(core_fields={"code": "C1"})]))

        assert len(root.findall("offers/offer")) == 1

    def test_special_characters_are_escaped(self):
        offer = OfferRecord(
            core_fields={"title": 'Tom & Jerry <"best">'},
            tags=(TagParam('Size "XL"', "a & b"),),
        )

        xml_text = render_feed([offer])

        assert "&amp;" in xml_text
        assert "&lt;" in xml_text
        root = parse(xml_text)
        assert root.findtext("offers/offer/title") == 'Tom & Jerry <"best">'
        param = root.find("offers/offer/tags/param")
        assert param.get("name") == 'Size "XL"'
        assert param.text == "a & b"

    def test_description_is_cdata(self):
        offer = OfferRecord(core_fields={"description": "<b>Bold</b> & more"})

        xml_text = render_feed([offer])

        assert "<![CDATA[<b>Bold</b> & more]]>" in xml_text
        assert parse(xml_text).findtext("offers/offer/description") == "<b>Bold</b> & more"

    def test_description_with_cdata_terminator_is_escaped(self):
        offer = OfferRecord(core_fields={"description": "a ]]> b"})

        xml_text = render_feed([offer])

        assert "CDATA" not in xml_text
        assert parse(xml_text).findtext("offers/offer/description") == "a ]]> b"

    def test_control_characters_are_removed(self):
        offer = OfferRecord(core_fields={"title": "Lamp\x0b\x01"})

        assert parse(render_feed([offer])).findtext("offers/offer/title") == "Lamp"

    def test_invalid_tag_name_is_skipped(self):
        offer = OfferRecord(core_fields={"code": "C1"}, extra_fields={"bad name": "x"})

        root = parse(render_feed([offer]))

        assert [child.tag for child in root.find("offers/offer")] == ["code"]

    def test_offer_with_only_invalid_tag_names_is_left_out(self):
        """Verify no empty <offer/> is written when every field is dropped."""
        offers = [
            OfferRecord(extra_fields={"Назва товару": "Lamp"}),
            OfferRecord(core_fields={"code": "C2"}),
        ]

        xml_text = render_feed(offers)

        assert "<offer/>" not in xml_text
        assert [o.findtext("code") for o in parse(xml_text).findall("offers/offer")] == ["C2"]

    def test_quotes_in_text_round_trip(self):
        """Verify quotes in text stay literal and parse back unchanged."""
        offer = OfferRecord(core_fields={"title": "Lamp \"Aurora\" 12''"})

        root = parse(render_feed([offer]))

        assert root.findtext("offers/offer/title") == "Lamp \"Aurora\" 12''"

    def test_delivery_methods_follow_tags(self):
        offer = OfferRecord(
            core_fields={"code": "C1"},
            tags=(TagParam("Color", "red"),),
            delivery_methods=(DeliveryMethod("Nova Poshta", Decimal("60.50")),),
        )

        offer_el = parse(render_feed([offer])).find("offers/offer")

        assert [child.tag for child in offer_el] == ["code", "tags", "delivery_methods"]
        method = offer_el.find("delivery_methods/delivery_method")
        assert method.findtext("method") == "Nova Poshta"
        assert method.findtext("price") == "60.5"

    def test_images_and_tags_follow_scalars(self):
        offer = OfferRecord(
            core_fields={"code": "C1"},
            extra_fields={"color": "red"},
            images=("https://a", "https://b"),
            tags=(TagParam("Color", "red"),),
        )

        offer_el = parse(render_feed([offer])).find("offers/offer")

        assert [child.tag for child in offer_el] == ["code", "color", "image_link", "tags"]
        assert [p.text for p in offer_el.find("image_link")] == ["https://a", "https://b"]
        assert offer_el.find("tags/param").get("name") == "Color"

    def test_rendering_is_deterministic(self):
        offers = [OfferRecord(core_fields={"code": "C1", "title": "Lamp"}, tags=(TagParam("a", "b"),))]

        assert render_feed(offers) == render_feed(offers)
