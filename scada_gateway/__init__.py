"""Gateway de polling SCADA: Modbus TCP -> Supabase."""

__version__ = "0.1.0"
