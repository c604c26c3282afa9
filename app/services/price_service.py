"""
价格服务 - 本体操作层
管理价格计划的每日价格覆盖（RatePlanPrice）
所有操作通过价格计划所属房源校验所有权
"""
import logging
from typing import List, Optional, Tuple
from datetime import date, timedelta
from decimal import Decimal
from sqlalchemy import func
from sqlalchemy.orm import Session
from app.config import settings
from app.models.ontology import RatePlan, RatePlanPrice, Property
from app.models.schemas import PriceOverrideCreate, PriceStats, PriceGaps
from app.services.exceptions import NotFoundError
from core.rates.calculator import quantize_money
from core.rates.dates import iter_nights

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 365


class PriceService:
    """价格服务"""

    def __init__(self, db: Session):
        self.db = db

    # ============== 查询 ==============

    def get_prices(self, user_id: int, rate_plan_id: int,
                   start_date: Optional[date] = None, end_date: Optional[date] = None,
                   limit: int = 365, offset: int = 0) -> List[RatePlanPrice]:
        """获取价格计划的每日价格列表"""
        self._require_owned_plan(user_id, rate_plan_id)
        if limit < 1 or limit > MAX_RANGE_DAYS:
            raise ValueError(f"limit 必须在 1 到 {MAX_RANGE_DAYS} 之间")
        if offset < 0:
            raise ValueError("offset 不能为负数")

        query = self.db.query(RatePlanPrice).filter(RatePlanPrice.rate_plan_id == rate_plan_id)
        if start_date:
            query = query.filter(RatePlanPrice.date >= start_date)
        if end_date:
            query = query.filter(RatePlanPrice.date <= end_date)
        return query.order_by(RatePlanPrice.date).offset(offset).limit(limit).all()

    def get_price_stats(self, user_id: int, rate_plan_id: int,
                        start_date: Optional[date] = None,
                        end_date: Optional[date] = None) -> PriceStats:
        """每日价格统计"""
        self._require_owned_plan(user_id, rate_plan_id)
        query = self.db.query(
            func.count(RatePlanPrice.id),
            func.avg(RatePlanPrice.amount),
            func.min(RatePlanPrice.amount),
            func.max(RatePlanPrice.amount),
            func.min(RatePlanPrice.date),
            func.max(RatePlanPrice.date),
        ).filter(RatePlanPrice.rate_plan_id == rate_plan_id)
        if start_date:
            query = query.filter(RatePlanPrice.date >= start_date)
        if end_date:
            query = query.filter(RatePlanPrice.date <= end_date)

        count, avg_amount, min_amount, max_amount, first_date, last_date = query.one()
        if not count:
            return PriceStats(count=0)
        return PriceStats(
            count=count,
            average_amount=quantize_money(Decimal(str(avg_amount))),
            min_amount=quantize_money(Decimal(str(min_amount))),
            max_amount=quantize_money(Decimal(str(max_amount))),
            first_date=first_date,
            last_date=last_date,
        )

    def get_price_gaps(self, user_id: int, rate_plan_id: int,
                       start_date: date, end_date: date) -> PriceGaps:
        """[start_date, end_date] 内没有每日价格的日期"""
        self._require_owned_plan(user_id, rate_plan_id)
        self._validate_range(start_date, end_date)

        existing = {
            row.date for row in self.db.query(RatePlanPrice.date).filter(
                RatePlanPrice.rate_plan_id == rate_plan_id,
                RatePlanPrice.date >= start_date,
                RatePlanPrice.date <= end_date
            ).all()
        }
        gaps = [d for d in iter_nights(start_date, end_date + timedelta(days=1)) if d not in existing]
        return PriceGaps(start_date=start_date, end_date=end_date, gap_count=len(gaps), dates=gaps)

    # ============== 写操作 ==============

    def upsert_price(self, user_id: int, rate_plan_id: int,
                     data: PriceOverrideCreate) -> RatePlanPrice:
        """设置某日价格（已存在则更新）"""
        self._require_owned_plan(user_id, rate_plan_id)
        self._validate_amount(data.amount)
        self._validate_not_past(data.date, "不能设置过去日期的价格")

        price = self._upsert(rate_plan_id, data.date, data.amount)
        self.db.commit()
        self.db.refresh(price)
        logger.info(f"Price for rate plan {rate_plan_id} on {data.date} set to {data.amount}")
        return price

    def bulk_upsert_prices(self, user_id: int, rate_plan_id: int,
                           updates: List[PriceOverrideCreate]) -> dict:
        """批量设置每日价格，无效条目记录错误，有效条目照常写入"""
        self._require_owned_plan(user_id, rate_plan_id)
        if not updates:
            raise ValueError("没有提供价格更新")
        if len(updates) > settings.PRICE_BULK_LIMIT:
            raise ValueError(f"一次最多更新 {settings.PRICE_BULK_LIMIT} 个价格")

        prices, errors = [], []
        for item in updates:
            try:
                self._validate_amount(item.amount)
                self._validate_not_past(item.date, "不能设置过去日期的价格")
            except ValueError as e:
                errors.append({"date": item.date, "error": str(e)})
                continue
            prices.append(self._upsert(rate_plan_id, item.date, item.amount))

        self.db.commit()
        for price in prices:
            self.db.refresh(price)
        logger.info(f"Bulk price update for rate plan {rate_plan_id}: "
                    f"{len(prices)} written, {len(errors)} rejected")
        return {"success": len(prices), "skipped": 0, "errors": errors, "prices": prices}

    def update_price(self, user_id: int, price_id: int, amount: Decimal) -> RatePlanPrice:
        """更新某条每日价格"""
        price = self._require_owned_price(user_id, price_id)
        self._validate_amount(amount)
        self._validate_not_past(price.date, "不能修改过去日期的价格")

        price.amount = amount
        self.db.commit()
        self.db.refresh(price)
        return price

    def delete_price(self, user_id: int, price_id: int) -> bool:
        """删除某条每日价格"""
        price = self._require_owned_price(user_id, price_id)
        self._validate_not_past(price.date, "不能删除过去日期的价格")

        self.db.delete(price)
        self.db.commit()
        return True

    def bulk_delete_prices(self, user_id: int, rate_plan_id: int,
                           start_date: date, end_date: date) -> int:
        """删除 [start_date, end_date] 内的每日价格，返回删除数量"""
        self._require_owned_plan(user_id, rate_plan_id)
        self._validate_range(start_date, end_date)
        self._validate_not_past(start_date, "不能删除过去日期的价格")

        deleted = self.db.query(RatePlanPrice).filter(
            RatePlanPrice.rate_plan_id == rate_plan_id,
            RatePlanPrice.date >= start_date,
            RatePlanPrice.date <= end_date
        ).delete(synchronize_session=False)
        self.db.commit()
        logger.info(f"Deleted {deleted} price(s) of rate plan {rate_plan_id} "
                    f"between {start_date} and {end_date}")
        return deleted

    def copy_prices(self, user_id: int, rate_plan_id: int, source_start_date: date,
                    source_end_date: date, target_start_date: date) -> dict:
        """把源日期区间的每日价格按相同偏移复制到目标起始日期之后"""
        self._require_owned_plan(user_id, rate_plan_id)
        if source_start_date >= source_end_date:
            raise ValueError("源开始日期必须早于源结束日期")
        self._validate_not_past(target_start_date, "不能复制价格到过去日期")

        sources = self.db.query(RatePlanPrice).filter(
            RatePlanPrice.rate_plan_id == rate_plan_id,
            RatePlanPrice.date >= source_start_date,
            RatePlanPrice.date <= source_end_date
        ).order_by(RatePlanPrice.date).all()
        if not sources:
            raise ValueError("源日期区间内没有价格")

        copies: List[Tuple[date, Decimal]] = [
            (target_start_date + (p.date - source_start_date), Decimal(p.amount)) for p in sources
        ]
        for target_date, amount in copies:
            self._upsert(rate_plan_id, target_date, amount)
        self.db.commit()
        logger.info(f"Copied {len(copies)} price(s) of rate plan {rate_plan_id} to {target_start_date}")
        return {"copied_count": len(copies), "errors": []}

    # ============== 内部方法 ==============

    def _upsert(self, rate_plan_id: int, target_date: date, amount: Decimal) -> RatePlanPrice:
        price = self.db.query(RatePlanPrice).filter(
            RatePlanPrice.rate_plan_id == rate_plan_id,
            RatePlanPrice.date == target_date
        ).first()
        if price:
            price.amount = amount
        else:
            price = RatePlanPrice(rate_plan_id=rate_plan_id, date=target_date, amount=amount)
            self.db.add(price)
        self.db.flush()
        return price

    def _require_owned_plan(self, user_id: int, rate_plan_id: int) -> RatePlan:
        rate_plan = self.db.query(RatePlan).join(Property).filter(
            RatePlan.id == rate_plan_id,
            Property.owner_id == user_id
        ).first()
        if not rate_plan:
            raise NotFoundError("价格计划不存在")
        return rate_plan

    def _require_owned_price(self, user_id: int, price_id: int) -> RatePlanPrice:
        price = self.db.query(RatePlanPrice).join(RatePlan).join(Property).filter(
            RatePlanPrice.id == price_id,
            Property.owner_id == user_id
        ).first()
        if not price:
            raise NotFoundError("价格不存在")
        return price

    def _validate_amount(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ValueError("价格必须大于 0")
        if amount > settings.PRICE_MAX_AMOUNT:
            raise ValueError(f"价格不能超过 {settings.CURRENCY} {settings.PRICE_MAX_AMOUNT}")

    def _validate_not_past(self, target_date: date, message: str) -> None:
        if target_date < date.today():
            raise ValueError(message)

    def _validate_range(self, start_date: date, end_date: date) -> None:
        if start_date >= end_date:
            raise ValueError("开始日期必须早于结束日期")
        if (end_date - start_date).days > MAX_RANGE_DAYS:
            raise ValueError(f"日期区间不能超过 {MAX_RANGE_DAYS} 天")
