#!/usr/bin/env python3
"""EmpowerFlow CLI - transaction categorization and personalized insights."""
import argparse
import sys
import logging
from pathlib import Path

from empowerflow.api.insight_service import InsightService
from empowerflow.config import DEFAULT_USER_ID, INSIGHT_FEEDBACK_ACTIONS, NEVER_PAYS_OFF_MONTHS
from empowerflow.intelligence.debt_calculator import calculate_loan_payment, compare_strategies


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S"
    )


def open_service(args) -> InsightService:
    return InsightService(db_path=Path(args.db) if args.db else None)


def format_months(months: float) -> str:
    if months >= NEVER_PAYS_OFF_MONTHS:
        return "never"
    return f"{months:.1f} months"


def cmd_import(args):
    """Import transactions from CSV/Excel file."""
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"Error: File not found: {file_path}")
        return 1

    with open_service(args) as service:
        try:
            result = service.import_file(
                file_path,
                user_id=args.user,
                account_id=args.account,
                auto_enrich=not args.no_enrich
            )
        except ValueError as e:
            print(f"Error: {e}")
            return 1

        print("Import complete:")
        print(f"  Total parsed:  {result['total_parsed']}")
        print(f"  Added:         {result['added']}")
        print(f"  Duplicates:    {result['duplicates']}")
        print(f"  Categorized:   {result['categorized']}")
        print(f"  Tagged:        {result['tagged']}")

    return 0


def cmd_enrich(args):
    """Categorize and tag stored transactions."""
    with open_service(args) as service:
        result = service.enrich_transactions(args.user)
        print(f"Categorized {result['categorized']} and tagged {result['tagged']} transactions")
    return 0


def cmd_analyze(args):
    """Detect recurring charges and spending anomalies."""
    with open_service(args) as service:
        result = service.analyze(args.user)

        print("Analysis complete:")
        print(f"\nRecurring charges found: {len(result['recurring'])}")
        for r in result["recurring"]:
            print(f"  - {r['name']}: ${r['amount']:.2f}/month, next on {r['next_date']}")
        if result["recurring"]:
            print(f"  Monthly total: ${result['monthly_recurring_total']:.2f}")

        print(f"\nAnomalies this week: {len(result['anomalies'])}")
        for a in result["anomalies"]:
            print(f"  - {a['insight']}")

    return 0


def cmd_summary(args):
    """Show summary of a user's transactions."""
    with open_service(args) as service:
        summary = service.get_summary(args.user)

        print("=" * 50)
        print("SPENDING SUMMARY")
        print("=" * 50)
        print(f"\nTotal transactions: {summary['total_transactions']}")
        print(f"Total income:       ${summary['total_income']:,.2f}")
        print(f"Total expenses:     ${summary['total_expenses']:,.2f}")
        print(f"Net:                ${summary['net']:,.2f}")
        print(f"\nRecurring:          {summary['recurring_transactions']}")
        print(f"Uncategorized:      {summary['uncategorized']}")

        if summary["category_breakdown"]:
            print("\nBy category:")
            ranked = sorted(
                summary["category_breakdown"].items(),
                key=lambda item: item[1]["total"],
                reverse=True
            )
            for name, data in ranked:
                print(f"  {name:<25} ${data['total']:>10,.2f}  ({data['count']} txns)")

    return 0


def cmd_insights(args):
    """Show ranked personalized insights."""
    with open_service(args) as service:
        insights = service.get_insights(args.user, with_learning=args.learning)
        if not insights:
            print("No insights yet. Import more transactions and try again.")
            return 0

        for insight in insights[:args.limit]:
            print(f"\n[{insight['type']}] {insight['title']} ({insight['confidence_score']:.0%})")
            print(f"  {insight['message']}")
            print(f"  id: {insight['id']}")
            for advice in insight["actionable_advice"]:
                print(f"    * {advice}")

    return 0


def cmd_loan(args):
    """Calculate a monthly loan payment."""
    payment = calculate_loan_payment(args.principal, args.rate, args.years)
    if not payment:
        print("Error: principal, rate and years must be positive numbers")
        return 1
    print(f"Monthly payment: ${payment:,.2f}")
    return 0


def cmd_debts(args):
    """Add a debt or compare payoff strategies."""
    with open_service(args) as service:
        if args.debts_command == "add":
            debt_id = service.store.add_debt(
                args.user, args.name, args.balance, args.min_payment, args.rate
            )
            print(f"Added debt {debt_id}: {args.name}")
            return 0

        debts = service.store.get_debts(args.user)
        if not debts:
            print("No debts recorded. Add one with: empowerflow debts add NAME BALANCE MIN RATE")
            return 0

        comparison = compare_strategies(debts, args.extra)
        for strategy, result in comparison.items():
            totals = result["totals"]
            print(f"\n{strategy.upper()}: {format_months(totals['total_months'])}, "
                  f"${totals['total_interest']:,.2f} interest")
            for debt in result["debts"]:
                print(f"  - {debt['name']}: ${debt['payment']:.2f}/month, "
                      f"paid off in {format_months(debt['months'])}")

    return 0


def cmd_goal(args):
    """Add a savings goal."""
    with open_service(args) as service:
        try:
            goal_id = service.store.add_goal(
                args.user,
                args.name,
                args.target,
                args.date,
                current_amount_saved=args.saved,
                monthly_contribution=args.monthly
            )
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        print(f"Added goal {goal_id}: {args.name}")
    return 0


def cmd_feedback(args):
    """Teach the categorizer from a manual categorization."""
    with open_service(args) as service:
        txn = service.get_transaction(args.txn_id)
        if txn is None:
            print(f"Error: Transaction {args.txn_id} not found")
            return 1

        patterns = service.record_feedback(
            txn["description"],
            args.category,
            args.subcategory,
            txn_id=args.txn_id,
            user_id=args.user,
            reasoning=args.reason
        )
        print(f"Categorized as {args.category}")
        if patterns:
            print(f"Learned patterns: {', '.join(patterns)}")

    return 0


def cmd_insight_feedback(args):
    """Accept, dismiss or modify an insight."""
    with open_service(args) as service:
        rate = service.record_insight_feedback(args.user, args.insight_id, args.action, args.note)
        print(f"Recorded {args.action} for insight {args.insight_id}")
        print(f"Suggestion acceptance rate: {rate:.0%}")
    return 0


def cmd_tag(args):
    """Tag a transaction as essential or discretionary."""
    with open_service(args) as service:
        try:
            txn = service.update_tag(args.txn_id, args.user, args.tag)
        except ValueError as e:
            print(f"Error: {e}")
            return 1
        if txn is None:
            print(f"Error: Transaction {args.txn_id} not found")
            return 1
        print(f"Tagged {txn['description']} as {args.tag}")
    return 0


def cmd_serve(args):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("empowerflow.web.api:app", host=args.host, port=args.port)
    return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="EmpowerFlow - transaction categorization and personalized insights",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  empowerflow import activity.csv              Import a bank export
  empowerflow analyze                          Recurring charges and anomalies
  empowerflow insights                         Ranked personalized insights
  empowerflow loan 25000 5.5 5                 Monthly loan payment
  empowerflow debts add Card 4200 105 18.9     Record a debt
  empowerflow debts compare --extra 50         Snowball vs avalanche
  empowerflow feedback 123 "Food & Drink"      Correct a category and learn from it
  empowerflow insight-feedback ID accepted     Tell insights what was useful
"""
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("-u", "--user", default=DEFAULT_USER_ID, help="User ID")
    parser.add_argument("--db", help="Path to SQLite database")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Import command
    import_parser = subparsers.add_parser("import", help="Import transactions from file")
    import_parser.add_argument("file", help="CSV or Excel file to import")
    import_parser.add_argument("--account", help="Account ID for the imported transactions")
    import_parser.add_argument("--no-enrich", action="store_true",
                               help="Don't categorize or tag imported transactions")
    import_parser.set_defaults(func=cmd_import)

    # Enrich command
    enrich_parser = subparsers.add_parser("enrich", help="Categorize and tag stored transactions")
    enrich_parser.set_defaults(func=cmd_enrich)

    # Analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Detect recurring charges and anomalies")
    analyze_parser.set_defaults(func=cmd_analyze)

    # Summary command
    summary_parser = subparsers.add_parser("summary", help="Show spending summary")
    summary_parser.set_defaults(func=cmd_summary)

    # Insights command
    insights_parser = subparsers.add_parser("insights", help="Show personalized insights")
    insights_parser.add_argument("-n", "--limit", type=int, default=10, help="Max insights")
    insights_parser.add_argument("--learning", action="store_true",
                                 help="Scale by suggestion acceptance and add behavior insights")
    insights_parser.set_defaults(func=cmd_insights)

    # Loan command
    loan_parser = subparsers.add_parser("loan", help="Calculate a monthly loan payment")
    loan_parser.add_argument("principal", help="Loan amount")
    loan_parser.add_argument("rate", help="Annual interest rate in percent")
    loan_parser.add_argument("years", help="Term in years")
    loan_parser.set_defaults(func=cmd_loan)

    # Debts command
    debts_parser = subparsers.add_parser("debts", help="Manage debts and compare payoff strategies")
    debts_sub = debts_parser.add_subparsers(dest="debts_command")
    debts_add = debts_sub.add_parser("add", help="Record a debt")
    debts_add.add_argument("name", help="Debt name")
    debts_add.add_argument("balance", type=float, help="Current balance")
    debts_add.add_argument("min_payment", type=float, help="Minimum monthly payment")
    debts_add.add_argument("rate", type=float, help="Annual interest rate in percent")
    debts_compare = debts_sub.add_parser("compare", help="Compare payoff strategies")
    debts_compare.add_argument("--extra", type=float, default=0, help="Extra monthly payment")
    debts_parser.set_defaults(func=cmd_debts, extra=0)

    # Goal command
    goal_parser = subparsers.add_parser("goal", help="Add a savings goal")
    goal_parser.add_argument("name", help="Goal name")
    goal_parser.add_argument("target", type=float, help="Target amount")
    goal_parser.add_argument("date", help="Target date (YYYY-MM-DD)")
    goal_parser.add_argument("--saved", type=float, default=0, help="Amount saved so far")
    goal_parser.add_argument("--monthly", type=float, default=0, help="Monthly contribution")
    goal_parser.set_defaults(func=cmd_goal)

    # Feedback command
    feedback_parser = subparsers.add_parser("feedback", help="Correct a transaction's category")
    feedback_parser.add_argument("txn_id", type=int, help="Transaction ID")
    feedback_parser.add_argument("category", help="Category name")
    feedback_parser.add_argument("subcategory", nargs="?", help="Subcategory name")
    feedback_parser.add_argument("--reason", help="Why you made the purchase, used for motivation insights")
    feedback_parser.set_defaults(func=cmd_feedback)

    # Insight feedback command
    insight_feedback_parser = subparsers.add_parser("insight-feedback", help="React to an insight")
    insight_feedback_parser.add_argument("insight_id", help="Insight ID shown by the insights command")
    insight_feedback_parser.add_argument("action", choices=INSIGHT_FEEDBACK_ACTIONS, help="Reaction")
    insight_feedback_parser.add_argument("--note", help="What you changed, for modified insights")
    insight_feedback_parser.set_defaults(func=cmd_insight_feedback)

    # Tag command
    tag_parser = subparsers.add_parser("tag", help="Tag a transaction")
    tag_parser.add_argument("txn_id", type=int, help="Transaction ID")
    tag_parser.add_argument("tag", choices=["essential", "discretionary"], help="Tag")
    tag_parser.set_defaults(func=cmd_tag)

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")
    serve_parser.set_defaults(func=cmd_serve)

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
