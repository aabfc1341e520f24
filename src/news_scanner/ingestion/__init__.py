from news_scanner.ingestion.gate import IngestionGate, ScanTally

__all__ = ["IngestionGate", "ScanTally"]
