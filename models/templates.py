"""
Node template catalog.

Every funnel node is built from a template descriptor plus per-node
overrides. The catalog is closed; custom nodes carry their own literal
fields and fall back to the custom category defaults.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .graph import (
    EdgeStyle, FunnelNode, GraphModel, NodeCategory, Position
)

logger = logging.getLogger(__name__)

CUSTOM_TYPE = "custom"


@dataclass(frozen=True)
class NodeTemplate:
    """Catalog entry a node's defaults come from."""
    key: str
    category: NodeCategory
    label: str
    icon: str
    color: str
    description: str


# Category colors used when neither the node nor its template sets one
CATEGORY_COLORS = {
    NodeCategory.ACQUISITION: "#4CAF50",
    NodeCategory.SYSTEM: "#6D4C41",
    NodeCategory.COMMUNICATION: "#F59E0B",
    NodeCategory.CONVERSION: "#0EA5E9",
    NodeCategory.CUSTOM: "#8B5CF6",
}


_TEMPLATES = [
    # Acquisition
    NodeTemplate("lead_form", NodeCategory.ACQUISITION, "Lead Form", "form",
                 "#22C55E", "Lead captured through a form"),
    NodeTemplate("paid_ads", NodeCategory.ACQUISITION, "Paid Ads", "megaphone",
                 "#16A34A", "Traffic from paid campaigns"),
    NodeTemplate("organic_social", NodeCategory.ACQUISITION, "Organic Social", "share",
                 "#15803D", "Leads from social media posts"),
    NodeTemplate("referral", NodeCategory.ACQUISITION, "Referral", "users",
                 "#4ADE80", "Lead referred by a customer"),
    # System
    NodeTemplate("crm_entry", NodeCategory.SYSTEM, "CRM Entry", "database",
                 "#78716C", "Register the lead in the CRM"),
    NodeTemplate("qualification", NodeCategory.SYSTEM, "Qualification", "target",
                 "#7C2D12", "Qualify and score leads"),
    NodeTemplate("lead_scoring", NodeCategory.SYSTEM, "Lead Scoring", "gauge",
                 "#9A3412", "Score the lead from its profile"),
    # Communication
    NodeTemplate("email", NodeCategory.COMMUNICATION, "Email", "mail",
                 "#F59E0B", "Send an email"),
    NodeTemplate("whatsapp", NodeCategory.COMMUNICATION, "WhatsApp", "message",
                 "#25D366", "Send a WhatsApp message"),
    NodeTemplate("phone_call", NodeCategory.COMMUNICATION, "Phone Call", "phone",
                 "#D97706", "Make the first contact"),
    NodeTemplate("meeting", NodeCategory.COMMUNICATION, "Meeting", "calendar",
                 "#B45309", "Schedule a discovery meeting"),
    # Conversion
    NodeTemplate("proposal", NodeCategory.CONVERSION, "Proposal", "dollar",
                 "#A16207", "Send a commercial proposal"),
    NodeTemplate("closing", NodeCategory.CONVERSION, "Closing", "check",
                 "#0EA5E9", "Negotiate and close the sale"),
    NodeTemplate("discarded", NodeCategory.CONVERSION, "Discarded", "x",
                 "#78716C", "End of the flow"),
]

NODE_TEMPLATES: dict[str, NodeTemplate] = {t.key: t for t in _TEMPLATES}


def get_template(key: str) -> Optional[NodeTemplate]:
    """Look up a template by key."""
    return NODE_TEMPLATES.get(key)


def templates_by_category() -> dict[NodeCategory, list[NodeTemplate]]:
    """Templates grouped by category, in catalog order."""
    grouped: dict[NodeCategory, list[NodeTemplate]] = {}
    for template in _TEMPLATES:
        grouped.setdefault(template.category, []).append(template)
    return grouped


def effective_color(node: FunnelNode) -> str:
    """
    Color a node is drawn with.

    The node's own override wins, then its template, then its category.
    """
    if node.color:
        return node.color
    template = NODE_TEMPLATES.get(node.type)
    if template is not None:
        return template.color
    return CATEGORY_COLORS.get(node.category, CATEGORY_COLORS[NodeCategory.CUSTOM])


def effective_icon(node: FunnelNode) -> str:
    if node.icon:
        return node.icon
    template = NODE_TEMPLATES.get(node.type)
    return template.icon if template else "circle"


def node_from_template(
    key: str,
    position: Position,
    node_id: Optional[str] = None,
    **overrides
) -> Optional[FunnelNode]:
    """
    Build a node from a catalog template.

    Args:
        key: Template key
        position: Top-left canvas position
        node_id: Explicit id, generated if omitted
        **overrides: Field values replacing the template defaults

    Returns:
        The new node, or None for an unknown key
    """
    template = NODE_TEMPLATES.get(key)
    if template is None:
        logger.warning(f"Unknown node template '{key}'")
        return None

    values = {
        "type": template.key,
        "category": template.category,
        "label": template.label,
        "description": f"New {template.label.lower()} step",
        "icon": template.icon,
        "position": Position(position.x, position.y),
        "config": {},
    }
    values.update(overrides)
    if node_id is not None:
        values["id"] = node_id
    return FunnelNode(**values)


def custom_node(
    label: str,
    position: Position,
    description: str = "",
    icon: str = "circle",
    color: Optional[str] = None,
    node_id: Optional[str] = None
) -> FunnelNode:
    """Build a node that carries its own literal fields."""
    values = dict(
        type=CUSTOM_TYPE,
        category=NodeCategory.CUSTOM,
        label=label,
        description=description,
        icon=icon,
        color=color,
        position=Position(position.x, position.y),
    )
    if node_id is not None:
        values["id"] = node_id
    return FunnelNode(**values)


def build_starter_funnel() -> GraphModel:
    """
    Sample funnel a new editor session opens with.

    Lead captured, qualification, first contact, proposal and negotiation,
    with a discarded exit for unqualified leads.
    """
    graph = GraphModel()

    starter_nodes = [
        ("start-1", "lead_form", "Lead Captured", "New lead captured from the form",
         (100, 150), {}),
        ("qual-1", "qualification", "Qualify Lead", "Check profile fit and interest",
         (450, 150), {"automation": True, "conditions": ["Score > 50", "Valid company"]}),
        ("contact-1", "phone_call", "First Contact", "Schedule a discovery meeting",
         (800, 100), {"delay": 1, "actions": ["Send email", "WhatsApp"]}),
        ("proposal-1", "proposal", "Send Proposal", "Present a tailored solution",
         (1150, 150), {"delay": 3, "actions": ["Create proposal", "Schedule demo"]}),
        ("closing-1", "closing", "Negotiation", "Negotiate terms and close",
         (1500, 150), {"actions": ["Follow-up", "Discounts"]}),
        ("end-1", "discarded", "Discarded", "Lead not qualified",
         (450, 350), {}),
    ]
    for node_id, key, label, description, (x, y), config in starter_nodes:
        node = node_from_template(
            key, Position(x, y), node_id=node_id,
            label=label, description=description, config=config,
        )
        graph.add_node(node)

    starter_connections = [
        ("conn-1", "start-1", "qual-1", "New lead", 0.5),
        ("conn-2", "qual-1", "contact-1", "Qualified", 0.3),
        ("conn-3", "qual-1", "end-1", "Not qualified", 0.3),
        ("conn-4", "contact-1", "proposal-1", "Interested", 0.4),
        ("conn-5", "proposal-1", "closing-1", "Proposal sent", 0.2),
    ]
    for edge_id, from_id, to_id, label, curvature in starter_connections:
        graph.add_edge(from_id, to_id, label=label, style=EdgeStyle.CURVED,
                       curvature=curvature, edge_id=edge_id)

    return graph
