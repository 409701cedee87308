#!/usr/bin/env python3
"""
Seasonal ARIMA modeling and forecasting of a monthly series.

Usage
-----
    python forecaster_SARIMA.py --help
    python forecaster_SARIMA.py --series-csv data/Electric_Production.csv
    python forecaster_SARIMA.py --series-csv data/Electric_Production.csv --strategy stepwise --no-plots

The implementation lives in sarima_forecaster_src/; see its main module for
the workflow stages.
"""

import sys

if __name__ == "__main__":
    # Import and delegate to the package implementation
    try:
        from sarima_forecaster_src.main import main
    except ImportError as e:
        print(f"Error: Cannot import the modules: {e}")
        print("Please ensure the sarima_forecaster_src/ directory is present and its dependencies are installed.")
        sys.exit(1)
    main()
