"""XML writer for marketplace offer feeds.

Document shape:

    <?xml version='1.0' encoding='UTF-8'?>
    <Market>                      (<Stock> for the stock feed)
      <offers>
        <offer>
          <code>..</code><title>..</title><id>..</id><vendor_code>..</vendor_code>
          ... remaining core fields, then extra fields ...
          <image_link><picture>url</picture>...</image_link>
          <tags><param name="..">value</param>...</tags>
          <delivery_methods>...</delivery_methods>   (stock feed)
        </offer>
      </offers>
    </Market>
"""
import re
from typing import Iterable, List, Optional, Tuple

import structlog
from lxml import etree

from marketfeed.feed.normalizer import format_number
from marketfeed.models.feed import CORE_TAGS, IDENTITY_TAGS, OfferRecord

logger = structlog.get_logger(__name__)

XML_DECLARATION = "<?xml version='1.0' encoding='UTF-8'?>"
CONTENT_TYPE = "application/xml; charset=utf-8"

CDATA_FIELDS = frozenset({"description"})

# Characters XML 1.0 does not allow in documents
_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")
_DOUBLE_QUOTED_DECLARATION = re.compile(r'^<\?xml version="1\.0" encoding="UTF-8"\?>')


def ordered_fields(offer: OfferRecord) -> List[Tuple[str, str]]:
    """Scalar fields in render order.

    Identity fields first (code, title, id, vendor_code), then the remaining
    core fields in canonical order, then extra fields in column order.
    """
    fields: List[Tuple[str, str]] = []
    for tag in IDENTITY_TAGS:
        if tag in offer.core_fields:
            fields.append((tag, offer.core_fields[tag]))
    for tag in CORE_TAGS:
        if tag in IDENTITY_TAGS:
            continue
        if tag in offer.core_fields:
            fields.append((tag, offer.core_fields[tag]))
    fields.extend(offer.extra_fields.items())
    return fields


def _xml_safe(text: str) -> str:
    return _INVALID_XML_CHARS.sub("", str(text))


def _append_scalar(offer_el: etree._Element, tag: str, value: str) -> None:
    try:
        element = etree.SubElement(offer_el, tag)
    except ValueError:
        logger.warning("invalid_feed_tag_skipped", tag=tag)
        return

    text = _xml_safe(value)
    if tag in CDATA_FIELDS and "]]>" not in text:
        element.text = etree.CDATA(text)
    else:
        element.text = text


def _build_offer(offer: OfferRecord) -> Optional[etree._Element]:
    """Offer element, or None when nothing renderable is left."""
    offer_el = etree.Element("offer")

    for tag, value in ordered_fields(offer):
        _append_scalar(offer_el, tag, value)

    if offer.images:
        image_link = etree.SubElement(offer_el, "image_link")
        for url in offer.images:
            etree.SubElement(image_link, "picture").text = _xml_safe(url)

    if offer.tags:
        tags_el = etree.SubElement(offer_el, "tags")
        for param in offer.tags:
            param_el = etree.SubElement(tags_el, "param", name=_xml_safe(param.name))
            param_el.text = _xml_safe(param.value)

    if offer.delivery_methods:
        methods_el = etree.SubElement(offer_el, "delivery_methods")
        for delivery in offer.delivery_methods:
            method_el = etree.SubElement(methods_el, "delivery_method")
            etree.SubElement(method_el, "method").text = _xml_safe(delivery.method)
            etree.SubElement(method_el, "price").text = format_number(delivery.price)

    if len(offer_el) == 0:
        return None
    return offer_el


def render_feed(offers: Iterable[OfferRecord], root_tag: str = "Market") -> str:
    """Serialize offers into a pretty-printed UTF-8 XML document.

    Offers without any field are left out; with no offers at all the
    document still carries an empty ``<offers/>`` element.

    Args:
        offers: Offer records in output order
        root_tag: ``Market`` for the offers feed, ``Stock`` for the stock feed

    Returns:
        XML document text starting with the single-quoted declaration
    """
    root = etree.Element(root_tag)
    offers_el = etree.SubElement(root, "offers")

    rendered = 0
    for offer in offers:
        if offer.is_empty:
            continue
        offer_el = _build_offer(offer)
        if offer_el is None:
            logger.warning("offer_without_renderable_fields", sku=offer.sku)
            continue
        offers_el.append(offer_el)
        rendered += 1

    xml_bytes = etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
    )
    xml_text = xml_bytes.decode("utf-8")
    xml_text = _DOUBLE_QUOTED_DECLARATION.sub(XML_DECLARATION, xml_text)

    logger.debug("feed_rendered", root_tag=root_tag, offers=rendered, size_bytes=len(xml_bytes))
    return xml_text
