"""Helpers to construct system/user prompts for the conversation pipeline.

Given the business context, the live catalog excerpt and the caller's text,
we emit:
* A system prompt describing the VHouse persona for the request kind.
* A user prompt with the context block, the catalog excerpt, the verbatim
  request and the output layout the parser expects.

Every prompt carries the same grounding rules: talk only about the products
listed in the excerpt and never invent products or prices.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping, Optional, Sequence

from vhouse_ai.domain.models import ConversationKind, EmailType, Product

if TYPE_CHECKING:
    from vhouse_ai.pipelines.conversation.types import BusinessContext, EmailDataValue

_BASE_PERSONA = (
    "Eres el asistente comercial de VHouse, distribuidor mayorista de productos "
    "veganos en México. Atiendes a clientes B2B (restaurantes, cafeterías y tiendas)."
)

# Instructions per conversation kind.
PROMPT_TEMPLATES: Mapping[ConversationKind, str] = {
    ConversationKind.GENERAL: (
        "Responde la consulta de forma cordial y profesional, destacando el valor "
        "de una cadena de suministro vegana."
    ),
    ConversationKind.ORDER_INQUIRY: (
        "El cliente consulta sobre un pedido. Confirma productos, cantidades y "
        "precios del catálogo y propone los siguientes pasos para formalizar el pedido."
    ),
    ConversationKind.PRICE_QUOTE: (
        "El cliente solicita una cotización. Desglosa precios unitarios del catálogo "
        "y aclara que los precios no incluyen IVA."
    ),
    ConversationKind.PRODUCT_AVAILABILITY: (
        "El cliente pregunta por disponibilidad. Indica el inventario disponible y "
        "sugiere alternativas del catálogo si algo no está en existencia."
    ),
    ConversationKind.DELIVERY_STATUS: (
        "El cliente pregunta por una entrega. Explica los tiempos habituales y ofrece "
        "dar seguimiento con el equipo de logística."
    ),
    ConversationKind.PAYMENT_INQUIRY: (
        "El cliente pregunta por pagos. Explica las condiciones (contado con 2% de "
        "descuento o crédito neto 30 días) sin comprometer cambios de crédito."
    ),
    ConversationKind.COMPLAINT: (
        "El cliente presenta una queja. Muestra empatía, reconoce el problema y "
        "explica que un ejecutivo de cuenta dará seguimiento personalmente."
    ),
    ConversationKind.TECHNICAL_SUPPORT: (
        "El cliente necesita soporte técnico con la plataforma de pedidos. Da pasos "
        "claros y breves."
    ),
    ConversationKind.BULK_ORDER: (
        "El cliente plantea un pedido de volumen. Confirma cantidades contra el "
        "inventario y menciona que los volumenes grandes requieren confirmación."
    ),
    ConversationKind.PARTNERSHIP: (
        "El cliente explora una alianza comercial. Presenta la propuesta de valor "
        "de VHouse y propone una reunión con el equipo comercial."
    ),
}

# Instructions per email type; unknown types fall back to the generic one.
EMAIL_TEMPLATES: Mapping[str, str] = {
    EmailType.ORDER_CONFIRMATION.value: "Confirma el pedido con el detalle de productos, cantidades y fecha de entrega.",
    EmailType.DELIVERY_UPDATE.value: "Informa el estado de la entrega y la guía de seguimiento.",
    EmailType.PAYMENT_REMINDER.value: "Recuerda con cortesía el pago pendiente, el monto y la fecha límite.",
    EmailType.PRODUCT_ALERT.value: "Avisa sobre el cambio de disponibilidad o precio del producto y ofrece alternativas.",
    EmailType.PROMOTIONAL_OFFER.value: "Presenta la promoción vigente con su vigencia y condiciones.",
    EmailType.MARKETING_CAMPAIGN.value: "Comunica la campaña destacando los valores veganos y sustentables de VHouse.",
    EmailType.BUSINESS_UPDATE.value: "Comparte la novedad del negocio de forma clara y breve.",
    EmailType.TECHNICAL_NOTICE.value: "Notifica el aviso técnico, su impacto y las acciones que debe tomar el cliente.",
}
GENERIC_EMAIL_TEMPLATE = "Redacta un correo comercial profesional con la información proporcionada."

GROUNDING_RULES = (
    "REGLAS:\n"
    "- Responde únicamente sobre los productos del CATÁLOGO DISPONIBLE.\n"
    "- Nunca inventes productos, precios ni existencias.\n"
    "- Si el cliente pide algo que no está en el catálogo, dilo explícitamente."
)

ORDER_SCHEMA = (
    '{"items": [{"product": "nombre exacto del catálogo", "quantity": 1, "notes": ""}], '
    '"delivery_date": "", "payment_terms": "", "special_requests": "", "missing_info": []}'
)


@dataclass(frozen=True)
class PromptBundle:
    system_prompt: str
    user_prompt: str


def render_catalog_excerpt(products: Sequence[Product]) -> str:
    """One line per product: id, name, price and stock."""

    if not products:
        return "CATÁLOGO DISPONIBLE:\n- (sin productos disponibles)"
    lines = ["CATÁLOGO DISPONIBLE:"]
    lines.extend(
        f"- [{product.id}] {product.name} | ${product.price:.2f} | existencia {product.stock_quantity}"
        for product in products
    )
    return "\n".join(lines)


def _system_prompt(instructions: str) -> str:
    return f"{_BASE_PERSONA}\n{instructions}\n\n{GROUNDING_RULES}"


def build_conversation_prompt(
    *,
    message: str,
    kind: ConversationKind,
    context: BusinessContext,
    catalog: Sequence[Product],
    freeform_context: Optional[str] = None,
) -> PromptBundle:
    sections = [context.render(), render_catalog_excerpt(catalog)]
    if freeform_context and freeform_context.strip():
        sections.append(f"CONTEXTO ADICIONAL:\n{freeform_context.strip()}")
    sections.append(f"MENSAJE DEL CLIENTE:\n{message}")
    sections.append("Responde en español, en máximo tres párrafos.")
    return PromptBundle(
        system_prompt=_system_prompt(PROMPT_TEMPLATES.get(kind, PROMPT_TEMPLATES[ConversationKind.GENERAL])),
        user_prompt="\n\n".join(sections),
    )


def build_email_prompt(
    *,
    email_type: str,
    context: BusinessContext,
    catalog: Sequence[Product],
    email_data: Mapping[str, EmailDataValue],
) -> PromptBundle:
    instructions = EMAIL_TEMPLATES.get(email_type, GENERIC_EMAIL_TEMPLATE)
    data_block = json.dumps(dict(email_data), ensure_ascii=False, indent=2, default=str)
    user_prompt = "\n\n".join(
        [
            context.render(),
            render_catalog_excerpt(catalog),
            f"TIPO DE EMAIL: {email_type}",
            f"DATOS DEL EMAIL:\n{data_block}",
            (
                "FORMATO DE RESPUESTA (obligatorio):\n"
                "SUBJECT: <asunto en una línea>\n"
                "BODY:\n<cuerpo del correo>"
            ),
        ]
    )
    return PromptBundle(
        system_prompt=_system_prompt(f"Redactas correos comerciales. {instructions}"),
        user_prompt=user_prompt,
    )


def build_order_prompt(
    *,
    text: str,
    context: BusinessContext,
    catalog: Sequence[Product],
) -> PromptBundle:
    user_prompt = "\n\n".join(
        [
            context.render(),
            render_catalog_excerpt(catalog),
            f"SOLICITUD DEL CLIENTE:\n{text}",
            (
                "Extrae el pedido. Usa el nombre exacto del catálogo en \"product\". "
                "Si un producto no está en el catálogo, no lo incluyas en items y "
                "agrégalo a missing_info.\n"
                "Responde SOLO con un bloque ```json``` con este esquema:\n"
                f"{ORDER_SCHEMA}"
            ),
        ]
    )
    return PromptBundle(
        system_prompt=_system_prompt("Extraes pedidos estructurados de mensajes de clientes."),
        user_prompt=user_prompt,
    )


__all__ = [
    "EMAIL_TEMPLATES",
    "GENERIC_EMAIL_TEMPLATE",
    "GROUNDING_RULES",
    "PROMPT_TEMPLATES",
    "PromptBundle",
    "build_conversation_prompt",
    "build_email_prompt",
    "build_order_prompt",
    "render_catalog_excerpt",
]
