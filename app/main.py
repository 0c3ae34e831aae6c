"""
Streamlit Frontend for Scenario Coach

Lets a user enter their current finances and explore possible futures.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Numbers first, commentary second
3. Clear error messages in simple language
4. Visual feedback for all operations
5. Educational, never prescriptive

The UI shows where every answer came from:
- Simulated numbers come from the Monte Carlo engine
- Commentary says when the reasoning service was unavailable
"""

import asyncio

import numpy as np
import streamlit as st

from scenario_coach.engine import InvalidInputError
from scenario_coach.models import (
    FinancialScenario,
    InterestRates,
    MonthlyContributions,
    ScenarioType,
    SimulationContext,
    WhatIfChanges,
)
from scenario_coach.orchestrator import (
    AutonomousTestingFlow,
    MonteCarloFlow,
    WhatIfFlow,
    create_app_components,
)
from scenario_coach.validation import InputValidator


# Page configuration
st.set_page_config(
    page_title="Scenario Coach",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .success-box {
        padding: 20px;
        background-color: #d4edda;
        border-radius: 10px;
        border-left: 5px solid #28a745;
        margin: 10px 0;
    }
    .warning-box {
        padding: 20px;
        background-color: #fff3cd;
        border-radius: 10px;
        border-left: 5px solid #ffc107;
        margin: 10px 0;
    }
    .info-box {
        padding: 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 10px 0;
    }
</style>
""", unsafe_allow_html=True)


# Default values for each scenario type's assumption
ASSUMPTION_INPUTS = {
    ScenarioType.INCOME_CHANGE: ("percentChange", "Income change (%)", 10.0),
    ScenarioType.EXPENSE_REDUCTION: ("percentReduction", "Expense reduction (%)", 15.0),
    ScenarioType.DEBT_PAYOFF: ("extraMonthlyPayment", "Extra monthly payment ($)", 200.0),
    ScenarioType.INVESTMENT_GROWTH: ("annualReturn", "Annual return (%)", 7.0),
    ScenarioType.EMERGENCY_EVENT: ("cost", "Emergency cost ($)", 5000.0),
    ScenarioType.INFLATION_IMPACT: ("annualRate", "Inflation rate (%)", 3.0),
    ScenarioType.JOB_LOSS: ("monthsUnemployed", "Months without income", 3.0),
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_gemini=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_gemini=False)


def money(value: float) -> str:
    return f"${value:,.0f}"


def render_context_sidebar() -> SimulationContext:
    """Collect the user's current finances in the sidebar."""
    st.sidebar.markdown("### Your finances (monthly)")
    income = st.sidebar.number_input("Income", min_value=0.0, value=5000.0, step=100.0)
    expenses = st.sidebar.number_input("Expenses", min_value=0.0, value=3500.0, step=100.0)
    savings = st.sidebar.number_input("Current savings", min_value=0.0, value=10000.0, step=500.0)
    debt = st.sidebar.number_input("Current debt", min_value=0.0, value=5000.0, step=500.0)

    with st.sidebar.expander("Rates and contributions"):
        savings_rate = st.number_input("Savings yield (% per year)", min_value=0.0, value=4.0)
        debt_rate = st.number_input("Debt APR (% per year)", min_value=0.0, value=18.0)
        savings_contribution = st.number_input("Monthly savings", min_value=0.0, value=500.0)
        debt_payment = st.number_input("Monthly debt payment", min_value=0.0, value=300.0)

    return SimulationContext(
        current_income=income,
        current_expenses=expenses,
        current_savings=savings,
        current_debt=debt,
        interest_rates=InterestRates(savings=savings_rate, debt=debt_rate),
        monthly_contributions=MonthlyContributions(
            savings=savings_contribution,
            debt_payment=debt_payment,
        ),
    )


def main():
    """Main application entry point."""
    # Initialize components
    monte_carlo_flow, autonomous_flow, what_if_flow = get_components()

    # Sidebar navigation
    st.sidebar.title("📈 Scenario Coach")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["🎲 Monte Carlo", "🔀 What-If", "🤖 Scenario Testing", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    context = render_context_sidebar()

    for issue in InputValidator().review_context(context):
        st.sidebar.warning(issue.message)

    # Route to appropriate page
    if page == "🎲 Monte Carlo":
        render_monte_carlo_page(monte_carlo_flow, context)
    elif page == "🔀 What-If":
        render_what_if_page(what_if_flow, context)
    elif page == "🤖 Scenario Testing":
        render_autonomous_page(autonomous_flow, context)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_monte_carlo_page(flow: MonteCarloFlow, context: SimulationContext):
    """Render the single-scenario simulation page."""
    st.title("🎲 Monte Carlo Simulation")
    st.markdown("Simulate one possible future many times and see the spread of outcomes.")

    col1, col2 = st.columns(2)
    with col1:
        scenario_type = st.selectbox(
            "Scenario",
            options=list(ScenarioType),
            format_func=lambda x: x.value.replace("_", " ").title(),
        )
        timeframe = st.slider("Timeframe (months)", min_value=1, max_value=60, value=12)
    with col2:
        assumptions = {}
        if scenario_type in ASSUMPTION_INPUTS:
            key, label, default = ASSUMPTION_INPUTS[scenario_type]
            assumptions[key] = st.number_input(label, value=default)
        iterations = st.select_slider("Iterations", options=[100, 500, 1000, 5000], value=1000)

    if st.button("▶️ Run Simulation", type="primary"):
        scenario = FinancialScenario(
            type=scenario_type,
            name=scenario_type.value.replace("_", " ").title(),
            assumptions=assumptions,
            timeframe_months=timeframe,
        )
        with st.spinner("Simulating..."):
            try:
                result = flow.run(context, scenario, iterations=iterations)
            except InvalidInputError as e:
                st.error(f"Invalid input: {e}")
                return

        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Mean net worth", money(result.mean))
        c2.metric("Median", money(result.median))
        c3.metric("10th - 90th percentile", f"{money(result.percentile_10)} to {money(result.percentile_90)}")
        c4.metric("Paths above today", f"{result.probability_of_success:.0%}")

        counts, edges = np.histogram(result.outcomes, bins=30)
        st.bar_chart({"paths": counts.tolist()})
        st.caption(
            f"Final net worth across {result.iterations} paths, "
            f"from {money(float(edges[0]))} to {money(float(edges[-1]))}."
        )


def render_what_if_page(flow: WhatIfFlow, context: SimulationContext):
    """Render the what-if comparison page."""
    st.title("🔀 What-If Comparison")
    st.markdown("Compare your current path with a few monthly changes.")

    col1, col2 = st.columns(2)
    with col1:
        income_change = st.number_input("Income change ($/month)", value=0.0, step=50.0)
        expense_change = st.number_input("Expense change ($/month)", value=-200.0, step=50.0)
    with col2:
        extra_savings = st.number_input("Extra savings ($/month)", value=0.0, step=50.0)
        extra_debt_payment = st.number_input("Extra debt payment ($/month)", value=100.0, step=50.0)
    timeframe = st.slider("Compare over (months)", min_value=1, max_value=60, value=12)

    if st.button("🔍 Compare", type="primary"):
        changes = WhatIfChanges(
            income_change=income_change,
            expense_change=expense_change,
            extra_savings=extra_savings,
            extra_debt_payment=extra_debt_payment,
        )
        with st.spinner("Comparing..."):
            try:
                result = run_async(flow.run(context, changes, timeframe))
            except InvalidInputError as e:
                st.error(f"Invalid input: {e}")
                return

        improvement = result.improvement
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Net worth", money(result.with_changes.projected_outcome.net_worth),
                  delta=money(improvement.net_worth_difference))
        c2.metric("Savings", money(result.with_changes.projected_outcome.final_savings),
                  delta=money(improvement.savings_difference))
        c3.metric("Debt reduced by", money(improvement.debt_difference))
        c4.metric("Runway (months)",
                  f"{result.with_changes.projected_outcome.emergency_runway_months:.1f}",
                  delta=f"{improvement.runway_difference:+.1f}")

        st.markdown(f"""
        <div class="info-box">
            <h4>📋 Analysis</h4>
            <p>{result.analysis}</p>
        </div>
        """, unsafe_allow_html=True)


def render_autonomous_page(flow: AutonomousTestingFlow, context: SimulationContext):
    """Render the autonomous scenario testing page."""
    st.title("🤖 Autonomous Scenario Testing")
    st.markdown(
        "Generate several possible futures, simulate each one, have every "
        "projection checked, and correct the ones that look off."
    )

    passes = st.slider("Maximum passes", min_value=1, max_value=5, value=3)

    if st.button("🚀 Run Scenario Tests", type="primary"):
        with st.spinner("Generating, simulating and verifying scenarios..."):
            try:
                result = run_async(flow.run(context, max_iterations=passes))
            except InvalidInputError as e:
                st.error(f"Invalid input: {e}")
                return

        if result.converged:
            st.markdown(f"""
            <div class="success-box">
                <h4>✅ All projections verified</h4>
                <p>Passes run: {result.passes_run}. Confidence: {result.confidence_score:.0%}</p>
            </div>
            """, unsafe_allow_html=True)
        else:
            st.markdown(f"""
            <div class="warning-box">
                <h4>⚠️ Some projections could not be verified</h4>
                <p>{result.remaining_invalid} still flagged after {result.passes_run} passes.
                Confidence: {result.confidence_score:.0%}</p>
            </div>
            """, unsafe_allow_html=True)

        if result.scenario_source == "fallback":
            st.info("The reasoning service was unavailable, so a standard set of scenarios was used.")

        for scenario, scenario_result, verdict in zip(
            result.scenarios, result.results, result.verifications
        ):
            outcome = scenario_result.projected_outcome
            icon = "✅" if verdict.is_valid else "⚠️"
            with st.expander(f"{icon} {scenario.name} ({scenario.impact.value})"):
                st.markdown(scenario.description or "_No description_")
                c1, c2, c3 = st.columns(3)
                c1.metric("Net worth", money(outcome.net_worth))
                c2.metric("Risk score", f"{scenario_result.risk_score}/100")
                c3.metric("Runway (months)", f"{outcome.emergency_runway_months:.1f}")
                for milestone in scenario_result.milestones:
                    st.markdown(
                        f"- Month {milestone.month}: {milestone.event} "
                        f"(savings {money(milestone.savings)}, debt {money(milestone.debt)})"
                    )
                for hint in scenario_result.recommendations:
                    st.markdown(f"- {hint}")
                if verdict.issues:
                    st.markdown("**Verification issues:**")
                    for issue in verdict.issues:
                        st.markdown(f"- {issue}")

        st.markdown("### Recommendations")
        for text in result.final_recommendations:
            st.markdown(f"- {text}")

        with st.expander("🔍 Activity Log"):
            for entry in result.activity_log:
                st.json(entry)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    # Check services
    from scenario_coach.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Gemini (Reasoning)", "gemini"),
        ("Simulation", "simulation"),
        ("Application", "app"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "Without `GEMINI_API_KEY` the app runs with built-in scenarios and "
        "unverified projections."
    )


if __name__ == "__main__":
    main()
