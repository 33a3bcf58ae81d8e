"""Industry catalogue and cross-sell relationships."""

from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select

from repositories.postgres_repo import PostgresRepository
from repositories.schema import allied_industries, industry_nodes


class IndustryRepository(PostgresRepository):
    def get_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        return self.fetch_one(select(industry_nodes).where(industry_nodes.c.name == name))

    def get_relationship(self, relationship_id: str) -> Optional[Dict[str, Any]]:
        """Resolve an allied-industry row together with the partner industry's names."""
        partner = industry_nodes.alias("partner")
        return self.fetch_one(
            select(
                allied_industries,
                partner.c.name.label("partner_name"),
                partner.c.display_name.label("partner_display_name"),
            )
            .select_from(
                allied_industries.join(
                    partner, allied_industries.c.allied_industry_id == partner.c.id
                )
            )
            .where(allied_industries.c.id == relationship_id)
        )

    def allied_for(self, industry_name: str) -> List[Dict[str, Any]]:
        """Partner industries of ``industry_name``, strongest first."""
        primary = industry_nodes.alias("primary_node")
        partner = industry_nodes.alias("partner")
        return self.fetch_all(
            select(
                partner.c.id,
                partner.c.name,
                partner.c.display_name,
                allied_industries.c.relationship_type,
                allied_industries.c.relationship_strength,
                allied_industries.c.trigger_stage,
            )
            .select_from(
                allied_industries.join(
                    primary, allied_industries.c.primary_industry_id == primary.c.id
                ).join(partner, allied_industries.c.allied_industry_id == partner.c.id)
            )
            .where(primary.c.name == industry_name)
            .order_by(desc(allied_industries.c.relationship_strength))
        )
