from .rocks import RecordStore, key_length, make_read_options, write_records

__all__ = ["RecordStore", "key_length", "make_read_options", "write_records"]
