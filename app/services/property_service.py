"""
房源服务 - 本体操作层
为计价引擎提供房源可用性与所有权查询
"""
from typing import List, Optional
from datetime import date
from sqlalchemy.orm import Session
from app.models.ontology import Property, PropertyUnavailableDate
from app.services.exceptions import NotFoundError


class PropertyService:
    """房源服务"""

    def __init__(self, db: Session):
        self.db = db

    def get_property(self, property_id: int) -> Optional[Property]:
        """获取房源"""
        return self.db.query(Property).filter(Property.id == property_id).first()

    def require_property(self, property_id: int) -> Property:
        """获取房源，不存在时抛出 NotFoundError"""
        prop = self.get_property(property_id)
        if not prop:
            raise NotFoundError("房源不存在")
        return prop

    def is_owner(self, user_id: int, property_id: int) -> bool:
        """用户是否拥有该房源"""
        return self.db.query(Property.id).filter(
            Property.id == property_id,
            Property.owner_id == user_id
        ).first() is not None

    def require_owned_property(self, user_id: int, property_id: int) -> Property:
        """获取当前用户拥有的房源，他人的房源与不存在的房源一样按 404 处理"""
        if not self.is_owner(user_id, property_id):
            raise NotFoundError("房源不存在")
        return self.get_property(property_id)

    def get_unavailable_dates(self, property_id: int, start_date: date,
                              end_date: date) -> List[date]:
        """获取 [start_date, end_date) 内的不可用日期"""
        rows = self.db.query(PropertyUnavailableDate.date).filter(
            PropertyUnavailableDate.property_id == property_id,
            PropertyUnavailableDate.date >= start_date,
            PropertyUnavailableDate.date < end_date
        ).order_by(PropertyUnavailableDate.date).all()
        return [row.date for row in rows]
