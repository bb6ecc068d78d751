import logging
import xml.etree.ElementTree as ET

from document import Document, Initiation, SchemaVersion
from errors import DocumentError


def _split(tag):
    if isinstance(tag, str) and tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return None, tag


def _descend(parent, segments):
    for seg in segments:
        last = parent[-1] if len(parent) else None
        if last is not None and last.tag == seg:
            parent = last
        else:
            parent = ET.SubElement(parent, seg)
    return parent


def _text(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _has_content(element):
    return len(element) > 0 or bool(element.attrib) or bool((element.text or "").strip())


def _build(node, version, tag):
    element = ET.Element(tag)
    for slot in version.slots(type(node)):
        value = getattr(node, slot.attr)
        for item in (value if slot.many else (value,)):
            _place(element, slot, item, version)
    return element if _has_content(element) else None


def _place(parent, slot, value, version):
    if value is None or value == "":
        return
    *wrappers, leaf = slot.path.split("/")
    if leaf.startswith("@"):
        _descend(parent, wrappers).set(leaf[1:], _text(value))
        return
    if leaf == ".":
        _descend(parent, wrappers).text = _text(value)
        return
    if slot.node is None or slot.node is bool:
        ET.SubElement(_descend(parent, wrappers), leaf).text = _text(value)
        return
    child = _build(value, version, leaf)
    if child is not None:
        _descend(parent, wrappers).append(child)


def render(document: Document, pretty: bool = True) -> bytes:
    version = document.version
    root = ET.Element("Document")
    root.attrib["xmlns"] = document.xmlns
    initiation = _build(document.initiation, version, version.root_tag())
    if initiation is None:
        initiation = ET.Element(version.root_tag())
    root.append(initiation)
    if pretty:
        ET.indent(root)
    xml_bytes = ET.tostring(root, encoding="utf-8", xml_declaration=True)
    logging.info(
        "rendered %s message %s with %d transaction(s)",
        version.value,
        document.initiation.group_header.message_id,
        sum(len(p.transactions) for p in document.initiation.payments),
    )
    return xml_bytes


def _clean(text):
    # whitespace only counts as absent, anything else is kept verbatim
    if text is None or not text.strip():
        return None
    return text


def _parse_bool(text, path):
    value = (text or "").strip().lower()
    if value in ("true", "1"):
        return True
    if value in ("false", "0"):
        return False
    raise DocumentError(f"{path}: expected xs:boolean, got {text!r}")


def _read(element, node_type, version, ns):
    def q(seg):
        return "{%s}%s" % (ns, seg)

    values = {}
    for slot in version.slots(node_type):
        *wrappers, leaf = slot.path.split("/")
        holder = element
        for seg in wrappers:
            holder = holder.find(q(seg))
            if holder is None:
                break
        if holder is None:
            continue
        if leaf.startswith("@"):
            values[slot.attr] = _clean(holder.get(leaf[1:]))
            continue
        if leaf == ".":
            values[slot.attr] = _clean(holder.text)
            continue
        if slot.many and slot.node is None:
            lines = (_clean(c.text) for c in holder.findall(q(leaf)))
            values[slot.attr] = tuple(line for line in lines if line is not None)
            continue
        if slot.many:
            values[slot.attr] = tuple(_read(c, slot.node, version, ns) for c in holder.findall(q(leaf)))
            continue
        child = holder.find(q(leaf))
        if child is None:
            continue
        if slot.node is None:
            values[slot.attr] = _clean(child.text)
        elif slot.node is bool:
            values[slot.attr] = _parse_bool(child.text, slot.path)
        else:
            values[slot.attr] = _read(child, slot.node, version, ns)
    return node_type(**values)


def parse(xml_bytes) -> Document:
    if isinstance(xml_bytes, str):
        xml_bytes = xml_bytes.encode("utf-8")
    if xml_bytes.startswith(b"\xef\xbb\xbf"):
        xml_bytes = xml_bytes[3:]
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError as exc:
        raise DocumentError(f"malformed XML: {exc}") from exc

    namespace, local = _split(root.tag)
    if local != "Document":
        raise DocumentError(f"root element must be Document, got {local!r}")
    if not namespace:
        raise DocumentError("Document carries no xmlns")
    try:
        version = SchemaVersion.from_namespace(namespace)
    except ValueError as exc:
        raise DocumentError(f"unsupported namespace {namespace!r}") from exc

    initiation_element = root.find("{%s}%s" % (namespace, version.root_tag()))
    if initiation_element is None:
        raise DocumentError(f"missing {version.root_tag()} element")
    if initiation_element.find("{%s}GrpHdr" % namespace) is None:
        raise DocumentError("missing GrpHdr element")
    payment_blocks = initiation_element.findall("{%s}PmtInf" % namespace)
    if not payment_blocks:
        raise DocumentError("missing PmtInf element")

    document = Document(version=version, initiation=_read(initiation_element, Initiation, version, namespace))
    logging.info(
        "parsed %s message %s with %d transaction(s)",
        version.value,
        document.initiation.group_header.message_id,
        sum(len(p.transactions) for p in document.initiation.payments),
    )
    return document
