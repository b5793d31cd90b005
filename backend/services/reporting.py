"""Console rendering of wallet reports, discovery results and arbitrage scans."""

from typing import Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from models import ArbitrageOpportunity, Severity, WalletReport
from services.wallet_discovery import IterationResult, ScanState

console = Console()

SEVERITY_STYLES = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
}


def _money(value) -> str:
    return f"${value:,.2f}"


def _pct(value) -> str:
    return f"{value:.1f}%"


def render_wallet_report(report: WalletReport, out: Optional[Console] = None):
    """Print one wallet's performance breakdown followed by its red flags"""
    out = out or console
    perf = report.performance

    title = perf.wallet_address
    if perf.display_name:
        title = f"{escape(perf.display_name)} ({perf.wallet_address})"

    out.print(f"\n[bold]Wallet Performance: {title}[/bold]")
    table = Table(show_header=False)
    table.add_column("Metric", style="dim")
    table.add_column("Value", justify="right")
    table.add_row("Total trades", str(perf.total_trades))
    table.add_row("Unique markets", str(perf.unique_markets))
    table.add_row("Resolved positions", str(perf.resolved_positions))
    table.add_row("Wins / Losses", f"{perf.wins} / {perf.losses}")
    table.add_row("Win rate", _pct(perf.win_rate))
    table.add_row("Total invested", _money(perf.total_invested))
    table.add_row("Total payout", _money(perf.total_payout))
    profit_style = "green" if perf.net_profit > 0 else "red"
    table.add_row("Net profit", f"[{profit_style}]{_money(perf.net_profit)}[/]")
    table.add_row("ROI", f"[{profit_style}]{_pct(perf.roi)}[/]")
    table.add_row("Avg profit per win", _money(perf.avg_profit_per_win))
    table.add_row("Avg loss per loss", _money(perf.avg_loss_per_loss))
    out.print(table)

    if report.flags:
        out.print("[bold red]Suspicious activity detected:[/bold red]")
        for flag in report.flags:
            style = SEVERITY_STYLES.get(flag.severity, "white")
            out.print(f"  [{style}]- {flag.description}[/]")
    else:
        out.print("[green]No suspicious patterns detected.[/green]")


def render_insufficient_data(address: str, out: Optional[Console] = None):
    (out or console).print(
        f"[yellow]Insufficient data for {address}: no resolved positions found.[/yellow]"
    )


def render_wallet_table(reports: Iterable[WalletReport], title: str, out: Optional[Console] = None):
    """Print accepted wallets as a ranked table, in the order given"""
    out = out or console
    reports = list(reports)
    if not reports:
        out.print(f"[dim]{title}: no profitable wallets found.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Wallet", style="cyan")
    table.add_column("Name")
    table.add_column("Resolved", justify="right")
    table.add_column("Win rate", justify="right")
    table.add_column("Invested", justify="right")
    table.add_column("Net profit", justify="right", style="green")
    table.add_column("ROI", justify="right", style="green")
    table.add_column("Flags", justify="center")

    for rank, report in enumerate(reports, start=1):
        perf = report.performance
        flags = f"[bold red]{len(report.flags)}[/]" if report.flags else "-"
        table.add_row(
            str(rank),
            perf.wallet_address,
            escape(perf.display_name or ""),
            str(perf.resolved_positions),
            _pct(perf.win_rate),
            _money(perf.total_invested),
            _money(perf.net_profit),
            _pct(perf.roi),
            flags,
        )
    out.print(table)


def render_flag_summary(reports: Iterable[WalletReport], out: Optional[Console] = None):
    """List every flagged wallet with its red flags"""
    out = out or console
    flagged = [r for r in reports if r.is_suspicious]
    if not flagged:
        return
    out.print(f"\n[bold red]{len(flagged)} wallet(s) with suspicious activity:[/bold red]")
    for report in flagged:
        out.print(f"[cyan]{report.wallet_address}[/cyan] (ROI {_pct(report.performance.roi)})")
        for flag in report.flags:
            style = SEVERITY_STYLES.get(flag.severity, "white")
            out.print(f"  [{style}]- {flag.description}[/]")


def render_iteration(result: IterationResult, out: Optional[Console] = None):
    out = out or console
    out.print(
        f"\n[bold]Scan #{result.iteration}[/bold]: dispatched {len(result.dispatched)}, "
        f"analyzed {result.analyzed}, skipped {result.skipped}, "
        f"accepted {len(result.accepted)} in {result.duration_seconds:.1f}s"
    )
    render_wallet_table(result.accepted, f"New profitable wallets (scan #{result.iteration})", out)
    render_flag_summary(result.accepted, out)


def render_scan_summary(state: ScanState, out: Optional[Console] = None):
    """Print the accumulated results and running totals of a continuous session"""
    out = out or console
    counters = state.counters()
    out.print(
        f"\n[bold green]Discovery finished:[/bold green] "
        f"{counters['scans_completed']} scans, "
        f"{counters['wallets_analyzed']} wallets analyzed, "
        f"{counters['wallets_skipped']} skipped, "
        f"{counters['profitable_found']} profitable"
    )
    reports = state.sorted_reports()
    render_wallet_table(reports, "All profitable wallets", out)
    render_flag_summary(reports, out)


def render_arbitrage(opportunities: list[ArbitrageOpportunity], out: Optional[Console] = None):
    out = out or console
    if not opportunities:
        out.print("[dim]No arbitrage opportunities found.[/dim]")
        return

    table = Table(
        title=f"Arbitrage Opportunities ({len(opportunities)})",
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Market", style="cyan", max_width=60)
    table.add_column("YES", justify="right")
    table.add_column("NO", justify="right")
    table.add_column("Total", justify="right")
    table.add_column("Profit/$", justify="right", style="green")
    table.add_column("Profit %", justify="right", style="green")
    table.add_column("Volume", justify="right")
    table.add_column("Liquidity", justify="right")

    for opp in opportunities:
        table.add_row(
            escape(opp.question or opp.condition_id),
            f"{opp.yes_price:.3f}",
            f"{opp.no_price:.3f}",
            f"{opp.total_cost:.3f}",
            f"{opp.profit_per_dollar:.4f}",
            _pct(opp.profit_percent),
            _money(opp.volume),
            _money(opp.liquidity),
        )
    out.print(table)
