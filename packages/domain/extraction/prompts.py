"""
Prompts and output schemas for the ticket extraction model call
"""

ALLOWED_CATEGORIES = [
    "Lácteos", "Carne", "Fruta/Verdura", "Limpieza", "Bebidas", "Higiene", "Otros",
]

EXTRACTION_SYSTEM_PROMPT = f"""Eres un asistente experto en contabilidad. Tu tarea es extraer datos estructurados de tickets de compra (supermercados, tiendas, etc).
REGLAS:
1. Tienda: Nombre comercial limpio.
2. Fecha: Formato YYYY-MM-DD. Si no hay año, asume el año en curso.
3. Items: Extrae cada línea de producto. Limpia nombres raros (ej: "PROD 250G" -> "Producto 250g").
4. Categorías permitidas: {", ".join(ALLOWED_CATEGORIES)}.
5. Totales: Asegura que la suma de items coincida con el total_ticket.
6. Si hay descuentos, añádelos en el campo 'descuento' (valor positivo)."""

TICKET_OUTPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "tienda": {"type": "string"},
        "fecha": {"type": "string"},
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "nombre": {"type": "string"},
                    "categoria": {"type": "string"},
                    "precio_unitario": {"type": "number"},
                    "cantidad": {"type": "number"},
                    "descuento": {"type": "number"},
                    "precio_total_linea": {"type": "number"},
                },
                "required": ["nombre", "categoria", "precio_unitario", "cantidad", "precio_total_linea"],
            },
        },
        "total_ticket": {"type": "number"},
    },
    "required": ["id", "tienda", "fecha", "items", "total_ticket"],
}


def build_extraction_prompt(email_content: str, ticket_id: str) -> str:
    """User prompt carrying the email body and the id the model must echo"""
    return f"""Analiza el contenido de este email y extrae los datos del ticket de compra.
UUID para el ticket: {ticket_id}

CONTENIDO DEL EMAIL:
---
{email_content}
---"""
