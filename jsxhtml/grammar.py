"""
Statement grammar for component sources.

This is not a JavaScript grammar. The source scanner cuts single top-level
`import` / `export` statements out of the module text, and this grammar
parses each one. Default-export heads are cut at their first `(`, `{` or `;`
and that delimiter is kept, so `export default memo(Page)` is rejected
instead of mistaken for an identifier export.
"""

statement_grammar = r"""
    start: import_decl | default_export | export_list

    // --- Imports ---
    import_decl: "import" module_spec ";"?                       -> side_effect_import
               | "import" import_clause "from" module_spec ";"?  -> binding_import

    import_clause: NAME ("," (namespace_import | named_imports))?
                 | namespace_import
                 | named_imports
    namespace_import: "*" "as" NAME
    named_imports: "{" (import_spec ("," import_spec)* ","?)? "}"
    import_spec: NAME ("as" NAME)?
               | STRING "as" NAME                                -> string_import_spec
               | "default" "as" NAME                             -> default_import_spec

    // --- Default exports (heads only) ---
    default_export: "export" "default" function_head "("         -> default_function
                  | "export" "default" class_head "{"            -> default_class
                  | "export" "default" NAME ";"?                 -> default_identifier
    function_head: async_kw? "function" generator? NAME?
    class_head: "class" NAME? superclass?
    superclass: "extends" NAME ("." NAME)*
    async_kw: "async"
    generator: "*"

    // --- Export lists ---
    export_list: "export" "{" (export_spec ("," export_spec)* ","?)? "}" ("from" module_spec)? ";"?
    export_spec: NAME ("as" export_alias)?
    ?export_alias: NAME | default_alias
    default_alias: "default"

    module_spec: STRING

    // --- Terminals ---
    STRING: /"(?:[^"\\]|\\.)*"/ | /'(?:[^'\\]|\\.)*'/
    NAME: /(?!(?:import|export|default|from|as|function|class|async|extends)(?![\w$]))[A-Za-z_$][\w$]*/

    COMMENT_1: /\/\/[^\n]*/
    BLOCK_COMMENT: /\/\*[\s\S]*?\*\//

    %import common.WS
    %ignore WS
    %ignore COMMENT_1
    %ignore BLOCK_COMMENT
"""
