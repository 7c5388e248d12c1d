# app/datawarehouse/registry.py
"""Static schema registry for the explored database.

Holds the table grouping shown in the sidebar, the allow-list of joins the user
may add, the lookup sources used to turn identifier columns into labels, and
the fixed filters some tables always carry.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Tuple

DEFAULT_GROUP = "Other"


@dataclass(frozen=True)
class JoinDescriptor:
    """A known foreign key: table.column -> foreign_table.foreign_column."""

    column: str
    foreign_table: str
    foreign_column: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass(frozen=True)
class LookupSource:
    """Where the label for an identifier column comes from."""

    table: str
    label_field: str
    id_field: str = "id"

    @property
    def cache_key(self) -> str:
        return f"{self.table}.{self.label_field}"


# ===== TABLE GROUPS =====

TABLE_GROUPS: Dict[str, List[str]] = {
    "CRM - Leads": [
        "leads",
        "lead_telefones",
        "loogsLeads",
        "anotacoes",
        "taskLead",
        "wppLeads",
        "leads_stage_backup",
    ],
    "CRM - Pipeline": ["funil", "etapa"],
    "CRM - Sellers": [
        "vendedores",
        "crm_metas_grupos",
        "crm_metas_geral_mes",
        "crm_metas_vendedor_mes",
        "crm_metas_vendedores_override",
        "checkpoint_gestor",
    ],
    "Sales": [
        "compras",
        "compras_logs",
        "imagemProposta",
        "agendamento",
        "tipo_agendamento",
    ],
    "Customers": [
        "clientes",
        "cliente_classificacao",
        "linha_do_tempo",
        "logs_cliente",
    ],
    "Celebrities & Blocks": [
        "celebridadesReferencia",
        "celebridades",
        "bloqueiosCelebridades",
        "tipo_bloqueio",
        "previewLogoCeleb",
        "noticias",
    ],
    "Segments & Geo": [
        "segmentos",
        "subsegmento",
        "negocio",
        "municipios",
        "munucipios2",
        "geolocation",
        "regioesDdd",
        "agencias",
        "agenciavendas",
    ],
    "Checkout": [
        "checkout_sessions",
        "checkout_config",
        "checkout_webhooks_log",
        "checkout_audit_log",
        "checkout_split_groups",
        "tentativas_pagamento",
    ],
    "Invoices": [
        "notas_fiscais",
        "notas_fiscais_logs",
        "nfeio_config",
        "nfe_emission_requests",
        "nfeio_id_map",
        "nfeio_webhook_inbox",
        "omie_sync",
    ],
    "WhatsApp": ["chatMessages", "n8n_chat_histories", "playbook_messages"],
    "Production": [
        "producao_workspaces",
        "producao_spaces",
        "producao_lists",
        "producao_statuses",
        "producao_members",
        "producao_clients",
        "producao_tasks",
        "producao_task_assignees",
        "producao_tags",
        "producao_task_tags",
        "producao_checklists",
        "producao_checklist_items",
        "producao_task_watchers",
        "producao_attachments",
        "producao_custom_field_definitions",
        "producao_custom_field_values",
        "producao_comments",
        "producao_task_time_logs",
    ],
    "Customer Service": [
        "crm_atd_clientes",
        "crm_atd_mensagens",
        "crm_atd_ai_config",
        "crm_atd_ai_jobs",
        "crm_atd_ai_runs",
        "crm_atd_logs",
        "crm_atd_clientes_ignore",
        "crm_atd_admin_passwords",
        "crm_atd_status_audit",
    ],
    "Marketing": [
        "meta_campaigns",
        "meta_insights_cache",
        "meta_insights_history",
        "campanhaTrafego",
        "dashboard_conversion_hourly",
        "dashboard_trend_events",
    ],
    "Billing": [
        "faturamento2025",
        "faturamento2026(porforasistema)",
        "rampa_ia_2026",
        "dashboard_metricas",
        "dashboard_extractions",
        "contagem_leads",
    ],
    "SGC (Management System)": [
        "sgc_celebridades",
        "sgc_segmentos",
        "sgc_subsegmentos",
        "sgc_negocios",
        "sgc_estados",
        "sgc_cidades",
    ],
    "Settings": [
        "follow_up_config",
        "follow_up_history",
        "lead_rotation_config",
        "lead_rotation_history",
        "lead_rotation_notification_config",
        "lead_notification_history",
        "meeting_reminder_config",
        "pack_promocional",
        "produtos",
        "produtos_mgs",
        "segmento_mgs",
        "user_column_permissions",
        "feriados_nacionais",
    ],
    "System": [
        "rate_limits",
        "security_logs",
        "activity_logs",
        "creatomate_webhooks",
        "clicksign_webhooks",
        "recorrencias",
        "recorrencias_cobrancas",
    ],
}


# ===== KNOWN JOINS =====
# The only joins offered to the user. Not introspected from the database.

def _joins(*specs: Tuple[str, str, str]) -> List[JoinDescriptor]:
    return [JoinDescriptor(column, table, foreign_column) for column, table, foreign_column in specs]


KNOWN_JOINS: Dict[str, List[JoinDescriptor]] = {
    "leads": _joins(
        ("etapa", "etapa", "id"),
        ("funil", "funil", "id"),
        ("vendedorResponsavel", "vendedores", "id"),
        ("segmento", "segmentos", "id"),
        ("subsegmento", "subsegmento", "id"),
        ("negocio", "negocio", "id"),
        ("celebridadeDesejada", "celebridadesReferencia", "id"),
        ("funilVendedor", "funil", "id"),
        ("etapaVendedorFunil", "etapa", "id"),
        ("agenciavendas", "agenciavendas", "id"),
        ("segmento_mgs_id", "segmento_mgs", "id"),
        ("celularBot", "celularesBot", "id"),
        ("wpp_lead", "wppLeads", "id"),
    ),
    "compras": _joins(
        ("cliente_id", "clientes", "id"),
        ("celebridade", "celebridadesReferencia", "id"),
        ("vendedoresponsavel", "vendedores", "id"),
        ("leadid", "leads", "lead_id"),
        ("segmento", "segmentos", "id"),
        ("subsegmento", "subsegmento", "id"),
        ("imagemproposta_id", "imagemProposta", "idproposta"),
        ("produto_mgs_id", "produtos_mgs", "id"),
        ("classificacao_id", "cliente_classificacao", "id"),
    ),
    "clientes": _joins(
        ("lead_id", "leads", "lead_id"),
        ("vendedorresponsavel", "vendedores", "id"),
        ("segmento", "segmentos", "id"),
        ("subsegmento", "subsegmento", "id"),
        ("classificacao_id", "cliente_classificacao", "id"),
    ),
    "imagemProposta": _joins(
        ("id_lead", "leads", "lead_id"),
        ("id_vendedor", "vendedores", "id"),
        ("celebridade1", "celebridadesReferencia", "id"),
        ("celebridade2", "celebridadesReferencia", "id"),
        ("celebridade3", "celebridadesReferencia", "id"),
        ("segmento", "segmentos", "id"),
        ("subsegmento", "subsegmento", "id"),
        ("negocio", "negocio", "id"),
        ("pack_promocional_id", "pack_promocional", "id"),
    ),
    "agendamento": _joins(
        ("leadId", "leads", "lead_id"),
        ("vendedor", "vendedores", "id"),
        ("tipo_agendamento", "tipo_agendamento", "id"),
    ),
    "bloqueiosCelebridades": _joins(
        ("celebridade", "celebridadesReferencia", "id"),
        ("subsegmento_id", "subsegmento", "id"),
        ("negocio_id", "negocio", "id"),
        ("tipo_bloqueio_id", "tipo_bloqueio", "id"),
    ),
    "loogsLeads": _joins(
        ("lead", "leads", "lead_id"),
        ("vendedor_id", "vendedores", "id"),
        ("etapa_anterior", "etapa", "id"),
        ("etapa_posterior", "etapa", "id"),
    ),
    "chatMessages": _joins(("lead_id", "leads", "lead_id")),
    "lead_telefones": _joins(("lead_id", "leads", "lead_id")),
    "checkout_sessions": _joins(
        ("compra_id", "compras", "id"),
        ("cliente_id", "clientes", "id"),
    ),
    "notas_fiscais": _joins(
        ("compra_id", "compras", "id"),
        ("cliente_id", "clientes", "id"),
    ),
    "producao_tasks": _joins(
        ("list_id", "producao_lists", "id"),
        ("status_id", "producao_statuses", "id"),
        ("client_id", "producao_clients", "id"),
        ("creator_id", "producao_members", "id"),
    ),
    "crm_metas_vendedor_mes": _joins(
        ("vendedor_id", "vendedores", "id"),
        ("grupo_id", "crm_metas_grupos", "id"),
    ),
    "etapa": _joins(("funil", "funil", "id")),
    "wppLeads": _joins(("idLead", "leads", "lead_id")),
    "anotacoes": _joins(("lead", "leads", "lead_id")),
    "follow_up_history": _joins(("lead_id", "leads", "lead_id")),
    "linha_do_tempo": _joins(("cliente_id", "clientes", "id")),
}


# ===== FK LABEL LOOKUPS =====
# Identifier columns rendered as a label from the referenced table.

SELLER = LookupSource("vendedores", "nome")
STAGE = LookupSource("etapa", "nome")
FUNNEL = LookupSource("funil", "nome")
SEGMENT = LookupSource("segmentos", "nome")
SUBSEGMENT = LookupSource("subsegmento", "nome")
CELEBRITY = LookupSource("celebridadesReferencia", "nome")

FK_LOOKUPS: Dict[str, Dict[str, LookupSource]] = {
    "leads": {
        "vendedorResponsavel": SELLER,
        "etapa": STAGE,
        "funil": FUNNEL,
        "etapaVendedorFunil": STAGE,
        "funilVendedor": FUNNEL,
        "segmento": SEGMENT,
        "subsegmento": SUBSEGMENT,
        "celebridadeDesejada": CELEBRITY,
    },
    "compras": {
        "vendedoresponsavel": SELLER,
        "celebridade": CELEBRITY,
        "segmento": SEGMENT,
        "subsegmento": SUBSEGMENT,
        "cliente_id": LookupSource("clientes", "nome"),
    },
    "clientes": {
        "vendedorresponsavel": SELLER,
        "segmento": SEGMENT,
        "subsegmento": SUBSEGMENT,
    },
    "agendamento": {
        "vendedor": SELLER,
        "tipo_agendamento": LookupSource("tipo_agendamento", "nome"),
    },
    "bloqueiosCelebridades": {
        "celebridade": CELEBRITY,
        "tipo_bloqueio_id": LookupSource("tipo_bloqueio", "nome"),
    },
    "loogsLeads": {
        "vendedor_id": SELLER,
        "etapa_anterior": STAGE,
        "etapa_posterior": STAGE,
    },
    "etapa": {
        "funil": FUNNEL,
    },
    "crm_metas_vendedor_mes": {
        "vendedor_id": SELLER,
    },
    "producao_tasks": {
        "status_id": LookupSource("producao_statuses", "name"),
        "list_id": LookupSource("producao_lists", "name"),
    },
}


# ===== MANDATORY FILTERS =====
# Equality predicates always applied to a table, ahead of user filters.
# Never shown in the filter list.

MANDATORY_FILTERS: Dict[str, List[Tuple[str, Any]]] = {
    "leads": [("novo_crm", True)],
}


# ===== ACCESSORS =====


def get_table_group(table_name: str) -> str:
    """Get the group label of a table, DEFAULT_GROUP when it is not grouped."""
    for group, tables in TABLE_GROUPS.items():
        if table_name in tables:
            return group
    return DEFAULT_GROUP


def get_grouped_tables(available_tables: Optional[List[str]] = None) -> Dict[str, List[str]]:
    """Get group -> tables.

    When the tables present in the data source are given, tables missing from
    every group are listed under DEFAULT_GROUP.
    """
    grouped = {group: list(tables) for group, tables in TABLE_GROUPS.items()}
    if available_tables:
        ungrouped = sorted(t for t in available_tables if get_table_group(t) == DEFAULT_GROUP)
        if ungrouped:
            grouped[DEFAULT_GROUP] = ungrouped
    return grouped


def get_joins_for_table(table_name: str) -> List[JoinDescriptor]:
    """Get the joins offered for a table."""
    return KNOWN_JOINS.get(table_name, [])


def get_lookups_for_table(table_name: str) -> Dict[str, LookupSource]:
    """Get column -> lookup source for a table."""
    return FK_LOOKUPS.get(table_name, {})


def get_lookup(table_name: str, column: str) -> Optional[LookupSource]:
    """Get the lookup source of a single column, if it has one."""
    return FK_LOOKUPS.get(table_name, {}).get(column)


def get_mandatory_filters(table_name: str) -> List[Tuple[str, Any]]:
    """Get the fixed equality filters of a table."""
    return MANDATORY_FILTERS.get(table_name, [])


def find_join(
    table_name: str,
    column: str,
    foreign_table: str,
    known_joins: Optional[Dict[str, List[JoinDescriptor]]] = None,
) -> Optional[JoinDescriptor]:
    """Get the known join from table.column to foreign_table, if there is one."""
    joins = KNOWN_JOINS if known_joins is None else known_joins
    for join in joins.get(table_name, []):
        if join.column == column and join.foreign_table == foreign_table:
            return join
    return None
