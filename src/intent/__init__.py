"""Intent parsing and validation.

The intent layer converts an English report command (typed or transcribed) into a strict `Intent`
object, which is then used to build a DAX query and/or a report-document patch.
"""
