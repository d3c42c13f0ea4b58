"""FastAPI backend for the EmpowerFlow insight pipeline."""
import tempfile
from datetime import date
from pathlib import Path
from typing import Optional, List, Dict, Any
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, UploadFile, File, Header, Query
from pydantic import BaseModel

from empowerflow.api.insight_service import InsightService
from empowerflow.config import DEFAULT_USER_ID
from empowerflow.intelligence.anomaly_detector import AnomalyDetector
from empowerflow.intelligence.debt_calculator import (
    calculate_debt_payoff_months,
    calculate_goal_progress,
    calculate_loan_payment,
    calculate_raise_impact,
    calculate_total_interest,
    compare_strategies,
    contribution_time_saved,
    distribute_savings,
)
from empowerflow.intelligence.goal_navigator import GoalNavigator
from empowerflow.intelligence.insight_generator import PersonalizedInsightGenerator
from empowerflow.intelligence.recurring_detector import RecurringDetector, monthly_total
from empowerflow.intelligence.tag_predictor import TagPredictor
from empowerflow.models import VALID_TAGS, Goal


# Global service instance (for production use)
_service: Optional[InsightService] = None


def get_service() -> InsightService:
    """Dependency to get the insight service."""
    global _service
    if _service is None:
        _service = InsightService()
        _service.__enter__()
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage service lifecycle."""
    yield
    global _service
    if _service is not None:
        _service.__exit__(None, None, None)
        _service = None


app = FastAPI(
    title="EmpowerFlow Insight API",
    description="Categorization, recurring charges, anomalies and personalized insights",
    version="1.0.0",
    lifespan=lifespan
)


# === Pydantic Models ===

class CategorizeRequest(BaseModel):
    description: str


class TransactionsRequest(BaseModel):
    transactions: List[Dict[str, Any]]
    today: Optional[date] = None


class InsightsRequest(BaseModel):
    transactions: List[Dict[str, Any]]
    goals: List[Dict[str, Any]] = []
    debts: List[Dict[str, Any]] = []
    today: Optional[date] = None
    with_learning: bool = False


class LoanPaymentRequest(BaseModel):
    principal: Any = None
    annual_rate: Any = None
    term_years: Any = None


class DebtPayoffRequest(BaseModel):
    balance: Any = None
    payment: Any = None
    rate: Any = None


class DebtStrategiesRequest(BaseModel):
    debts: List[Dict[str, Any]]
    extra: Any = 0


class GoalFeasibilityRequest(BaseModel):
    transactions: List[Dict[str, Any]]
    goal: Dict[str, Any]
    today: Optional[date] = None


class GoalProgressRequest(BaseModel):
    current: Any = None
    contribution: Any = None
    target: Any = None


class RaiseImpactRequest(BaseModel):
    raise_amount: Any = None


class TimeSavedRequest(BaseModel):
    current: Any = None
    target: Any = None
    monthly_contribution: Any = None
    extra_contribution: Any = None


class DistributeSavingsRequest(BaseModel):
    total: Any = None
    goal_ids: List[Any] = []


class FeedbackRequest(BaseModel):
    description: str
    category: str
    subcategory: Optional[str] = None
    transaction_id: Optional[int] = None
    reasoning: Optional[str] = None


class NegativeFeedbackRequest(BaseModel):
    selected_description: str
    deselected_description: str
    category: str
    subcategory: Optional[str] = None


class TagUpdate(BaseModel):
    tag: Optional[str] = None


class InsightFeedbackRequest(BaseModel):
    action: str
    modification: Optional[str] = None


# === Stateless analysis endpoints ===

@app.post("/api/categorize")
def categorize(request: CategorizeRequest, service: InsightService = Depends(get_service)):
    """Categorize a single description with rules and learned patterns."""
    return service.categorizer.categorize(request.description).to_dict()


@app.post("/api/categorize/batch")
def categorize_batch(request: TransactionsRequest, service: InsightService = Depends(get_service)):
    """Categorize a batch of transactions with rules and learned patterns."""
    result = service.categorizer.categorize_transactions(request.transactions)
    return {
        "transactions": [t.to_dict() for t in result["transactions"]],
        "stats": result["stats"],
    }


@app.post("/api/tags/predict")
def predict_tags(request: TransactionsRequest):
    """Predict essential/discretionary tags for expenses."""
    return {"predictions": TagPredictor().predict_tags(request.transactions)}


@app.post("/api/recurring")
def detect_recurring(request: TransactionsRequest):
    """Detect monthly recurring charges."""
    recurring = RecurringDetector().detect(request.transactions)
    return {
        "recurring": [r.to_dict() for r in recurring],
        "monthly_total": monthly_total(recurring),
    }


@app.post("/api/anomalies")
def detect_anomalies(request: TransactionsRequest):
    """Find categories spending above their trailing weekly average."""
    anomalies = AnomalyDetector().analyze_transactions(request.transactions, today=request.today)
    return [a.to_dict() for a in anomalies]


@app.post("/api/insights")
def generate_insights(request: InsightsRequest):
    """Generate ranked personalized insights."""
    generator = PersonalizedInsightGenerator(
        request.transactions,
        goals=request.goals,
        debts=request.debts,
        today=request.today,
    )
    if request.with_learning:
        insights = generator.generate_personalized_insights_with_learning()
    else:
        insights = generator.generate_personalized_insights()
    return [i.to_dict() for i in insights]


# === Calculators ===

@app.post("/api/calculators/loan-payment")
def loan_payment(request: LoanPaymentRequest):
    """Monthly payment on an amortized loan. 0 for missing or bad input."""
    return {
        "monthly_payment": calculate_loan_payment(
            request.principal, request.annual_rate, request.term_years
        )
    }


@app.post("/api/calculators/debt-payoff")
def debt_payoff(request: DebtPayoffRequest):
    """Months to pay off a debt and the interest paid."""
    return {
        "months": calculate_debt_payoff_months(request.balance, request.payment, request.rate),
        "total_interest": calculate_total_interest(request.balance, request.payment, request.rate),
    }


@app.post("/api/calculators/debt-strategies")
def debt_strategies(request: DebtStrategiesRequest):
    """Compare current, snowball and avalanche payoff strategies."""
    return compare_strategies(request.debts, request.extra)


@app.post("/api/calculators/raise-impact")
def raise_impact(request: RaiseImpactRequest):
    """Monthly take-home impact of a gross annual raise."""
    return {"monthly_impact": calculate_raise_impact(request.raise_amount)}


@app.post("/api/goals/feasibility")
def goal_feasibility(request: GoalFeasibilityRequest):
    """Check whether a goal fits the user's budget and suggest cuts."""
    goal = Goal.from_dict(request.goal)
    if goal is None:
        raise HTTPException(status_code=400, detail="Goal needs a target_amount and target_date")

    navigator = GoalNavigator(request.transactions, [goal], today=request.today)
    recommendations = navigator.generate_recommendations(goal)
    return {
        "feasibility": navigator.calculate_goal_feasibility(goal),
        "recommendations": recommendations,
        "challenge": navigator.generate_weekly_challenge(goal, recommendations),
    }


@app.post("/api/goals/progress")
def goal_progress(request: GoalProgressRequest):
    """Percent of a goal reached after a contribution."""
    return {
        "progress": calculate_goal_progress(request.current, request.contribution, request.target)
    }


@app.post("/api/goals/time-saved")
def goal_time_saved(request: TimeSavedRequest):
    """Time saved on a goal by contributing extra each month."""
    return contribution_time_saved(
        request.current, request.target, request.monthly_contribution, request.extra_contribution
    )


@app.post("/api/goals/distribute")
def goal_distribute(request: DistributeSavingsRequest):
    """Split a savings amount evenly across goals."""
    return {"allocations": distribute_savings(request.total, request.goal_ids)}


# === Learning ===

@app.post("/api/feedback")
def record_feedback(
    request: FeedbackRequest,
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Learn from a manual categorization."""
    if request.transaction_id is not None and service.get_transaction(request.transaction_id) is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    patterns = service.record_feedback(
        request.description,
        request.category,
        request.subcategory,
        txn_id=request.transaction_id,
        user_id=x_user_id,
        reasoning=request.reasoning,
    )
    return {"success": True, "patterns": patterns}


@app.post("/api/feedback/negative")
def record_negative_feedback(
    request: NegativeFeedbackRequest,
    service: InsightService = Depends(get_service)
):
    """Learn from a deselected look-alike transaction."""
    result = service.record_negative_feedback(
        request.selected_description,
        request.deselected_description,
        request.category,
        request.subcategory,
    )
    return {"success": True, **result}


# === Per-user stored data ===

@app.get("/api/summary")
def get_summary(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Get transaction summary with category breakdown."""
    return service.get_summary(x_user_id)


@app.get("/api/data")
def get_data(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """All stored transactions for a user plus their insights."""
    transactions = service.get_transactions(x_user_id)
    analysis = service.analyze(x_user_id)
    return {
        "transactions": [t.to_dict() for t in transactions],
        "insights": {
            "anomalies": analysis["anomalies"],
            "recurring": analysis["recurring"],
            "personalized": service.get_insights(x_user_id),
        },
    }


@app.post("/api/import")
async def import_file(
    file: UploadFile = File(...),
    auto_enrich: bool = Query(True),
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Import transactions from CSV/Excel file."""
    suffix = Path(file.filename).suffix if file.filename else ".csv"
    with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
        content = await file.read()
        tmp.write(content)
        tmp_path = Path(tmp.name)

    try:
        return service.import_file(tmp_path, user_id=x_user_id, auto_enrich=auto_enrich)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        tmp_path.unlink()


@app.post("/api/enrich")
def enrich(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Categorize and tag a user's stored transactions."""
    return service.enrich_transactions(x_user_id)


@app.get("/api/transactions/predict-tags")
def predict_stored_tags(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Predict tags for a user's untagged stored expenses."""
    predictions = service.predict_tags(x_user_id)
    if not predictions:
        return {"message": "All transactions are already tagged.", "predictions": {}}
    return {
        "message": f"Successfully predicted tags for {len(predictions)} transactions.",
        "predictions": predictions,
    }


@app.get("/api/transactions/{txn_id}")
def get_transaction(txn_id: int, service: InsightService = Depends(get_service)):
    """Get a single transaction by ID."""
    txn = service.get_transaction(txn_id)
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return txn


@app.post("/api/transactions/{txn_id}/tag")
def update_tag(
    txn_id: int,
    request: TagUpdate,
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Set a transaction's essential/discretionary tag."""
    if request.tag not in VALID_TAGS:
        raise HTTPException(
            status_code=400,
            detail='Invalid tag value. Must be "essential" or "discretionary".'
        )
    txn = service.update_tag(txn_id, x_user_id, request.tag)
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found or not authorized.")
    return {"message": "Transaction tag updated successfully.", "transaction": txn}


@app.get("/api/insights")
def get_insights(
    with_learning: bool = Query(False),
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Ranked insights for a user's stored transactions, goals and debts."""
    return service.get_insights(x_user_id, with_learning=with_learning)


@app.post("/api/insights/{insight_id}/feedback")
def record_insight_feedback(
    insight_id: str,
    request: InsightFeedbackRequest,
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Accept, dismiss or modify an insight. Later insights scale with the acceptance rate."""
    try:
        rate = service.record_insight_feedback(
            x_user_id, insight_id, request.action, request.modification
        )
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail='Invalid action. Must be "accepted", "dismissed" or "modified".'
        )
    return {"success": True, "acceptance_rate": rate}


@app.get("/api/insights/learning")
def get_learning_statistics(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Corrections, motivations and acceptance rate recorded for a user."""
    return service.get_learning_statistics(x_user_id)


@app.get("/api/goals/suggestions")
def get_goal_suggestions(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Goal ideas sized from the user's income, expenses and debts."""
    return service.get_goal_suggestions(x_user_id)


@app.get("/api/profile-prompt")
def get_profile_prompt(
    x_user_id: str = Header(DEFAULT_USER_ID),
    service: InsightService = Depends(get_service)
):
    """Prompt text for the external spending-profile writer."""
    return {"prompt": service.get_profile_prompt(x_user_id)}
