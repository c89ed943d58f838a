#!/usr/bin/env python3
"""
CLI tool for analyzing a portfolio from a request file and CSV price data.
Usage: analyze-portfolio REQUEST [options]
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd
import yaml
from dotenv import load_dotenv

from ingestion.transforms.normalizers import index_from_frame, series_map_from_frames
from returns_engine.models import IndexSeries, PortfolioReturnResult
from returns_engine.portfolio_job import PortfolioRequest, analyze_portfolio


logger = logging.getLogger(__name__)


def load_request_file(path: Path) -> Dict[str, Any]:
    """
    Load a request mapping from YAML or JSON.

    Besides the PortfolioRequest fields the mapping names its data files:
    'prices' (CSV with ticker, date|timestamp, close), and optionally
    'dividends' (CSV with ticker, date|timestamp, amount) and 'index'
    (CSV with date|timestamp, close). Relative paths resolve against the
    request file's directory.
    """
    with open(path, 'r') as f:
        if path.suffix.lower() == '.json':
            data = json.load(f)
        else:
            data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError(f"Request file {path} must contain a mapping")

    if 'prices' not in data:
        raise ValueError(f"Request file {path} must name a 'prices' CSV file")

    for key in ('prices', 'dividends', 'index'):
        if data.get(key):
            data[key] = str((path.parent / data[key]).resolve())

    return data


def _read_optional_csv(path: Optional[str]) -> Optional[pd.DataFrame]:
    if not path:
        return None
    return pd.read_csv(path)


def _write_series_csv(result: PortfolioReturnResult, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)
    for r in result.stock_returns:
        r.to_frame().to_csv(output_dir / f'{r.ticker}.csv')


def _show_quick_summary(result: PortfolioReturnResult, index: Optional[IndexSeries]):
    """Show quick summary of portfolio figures."""
    print(f"📋 Portfolio Summary ({', '.join(result.tickers)}):")
    if result.start_date and result.end_date:
        print(f"   Period: {result.start_date} to {result.end_date}")
    print(f"   Price Return: {result.portfolio_price_return * 100:+.2f}%")
    print(f"   Total Return: {result.portfolio_total_return * 100:+.2f}%")
    print(f"   CAGR: {result.portfolio_cagr * 100:+.2f}%")
    print(f"   Volatility: {result.portfolio_volatility * 100:.2f}%")
    print(f"   Sharpe Ratio: {result.portfolio_sharpe_ratio:.2f}")
    print(f"   Max Drawdown: -{result.portfolio_max_drawdown * 100:.2f}%")
    print()

    for r in result.stock_returns:
        line = (
            f"   {r.ticker:<8} weight {r.weight:.2f}  "
            f"total {r.total_return * 100:+.2f}%  vol {r.volatility * 100:.2f}%  "
            f"max dd -{r.max_drawdown * 100:.2f}%"
        )
        if index is not None and r.beta is not None:
            line += f"  beta {r.beta:.2f}"
        print(line)

    if result.correlations:
        print()
        print("   Correlations:")
        for (a, b), value in result.correlations.items():
            print(f"   {a}/{b}: {value:+.3f}")

    print()


def main(argv=None):
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description='Compute return and risk figures for a portfolio',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  analyze-portfolio portfolio.yml
  analyze-portfolio portfolio.json --output ./data/processed/portfolio.json
  analyze-portfolio portfolio.yml --series-csv ./data/processed/series --no-correlations
        """
    )

    parser.add_argument('request', help='Request file (YAML or JSON)')
    parser.add_argument('--output',
                       help='Output JSON file path (default: ./data/processed/portfolio/{REQUEST}.json)')
    parser.add_argument('--series-csv',
                       help='Directory to write per-ticker series CSV files')
    parser.add_argument('--risk-free-rate',
                       type=float,
                       help='Per-period risk-free rate (overrides the request file)')
    parser.add_argument('--no-correlations',
                       action='store_true',
                       help='Skip pairwise correlations')
    parser.add_argument('--log-level',
                       default=os.getenv('PORTFOLIO_LOG_LEVEL', 'WARNING'),
                       choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                       help='Logging level (default: PORTFOLIO_LOG_LEVEL or WARNING)')
    parser.add_argument('--quiet', '-q',
                       action='store_true',
                       help='Minimal output (just success/failure)')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    request_path = Path(args.request)
    if not request_path.exists():
        print(f"❌ Request file not found: {request_path}", file=sys.stderr)
        sys.exit(1)

    if args.output is None:
        output_path = Path('./data/processed/portfolio') / f'{request_path.stem}.json'
    else:
        output_path = Path(args.output)

    max_workers = int(os.getenv('PORTFOLIO_MAX_WORKERS', '1'))

    try:
        data = load_request_file(request_path)
        if args.risk_free_rate is not None:
            data['risk_free_rate'] = args.risk_free_rate
        request = PortfolioRequest.from_dict(data)

        prices_df = pd.read_csv(data['prices'])
        dividends_df = _read_optional_csv(data.get('dividends'))
        index_df = _read_optional_csv(data.get('index'))

        series_by_ticker = series_map_from_frames(prices_df, dividends_df)
        index = index_from_frame(index_df, symbol=data.get('index_symbol')) if index_df is not None else None

        if not args.quiet:
            print(f"🔍 Analyzing portfolio: {', '.join(request.tickers)}")
            print(f"📊 Prices: {data['prices']}")
            if index is not None:
                print(f"📈 Benchmark: {index.symbol or data['index']}")
            print()

        result = analyze_portfolio(
            request,
            series_by_ticker,
            index=index,
            max_workers=max_workers,
            include_correlations=not args.no_correlations
        )
    except (ValueError, OSError, yaml.YAMLError) as e:
        logger.debug("analysis failed", exc_info=True)
        print(f"❌ Analysis failed: {e}", file=sys.stderr)
        sys.exit(1)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'w') as f:
        json.dump(result.to_dict(), f, indent=2, default=str)

    if args.series_csv:
        _write_series_csv(result, Path(args.series_csv))

    if args.quiet:
        print(f"✅ Portfolio analysis complete: {output_path}")
    else:
        print("✅ Analysis completed successfully!")
        print(f"💾 Results saved to: {output_path}")
        if args.series_csv:
            print(f"💾 Series saved to: {args.series_csv}")
        print()
        _show_quick_summary(result, index)

    sys.exit(0)


if __name__ == '__main__':
    main()
