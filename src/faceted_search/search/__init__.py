"""
Document, mapping and query construction package.

This package is pure computation over a field configuration:
- schema: Field types and schema definitions
- mapping_builder: Field configuration -> index mapping
- document_builder: Record -> indexable document
- taxonomy: Term ancestor expansion
- query_compiler: Free text + facet selection -> compiled query
- result_parser: Engine response -> uniform result
- suggester: Autocomplete request and response handling
- extensions: Ordered extension points shared by all of the above
"""
