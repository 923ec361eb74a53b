"""Reserved words, commands and built-in function names of Hansl.

The lists are used by the tokenizer (keyword and type classification), by
the structure pass (block openers and closers) and by the naming checker
(shadowing of built-ins).
"""

from __future__ import annotations

from typing import Dict, FrozenSet

# Declaration types. Plural forms are the array types.
TYPE_WORDS: FrozenSet[str] = frozenset({
    "scalar", "series", "matrix", "string", "list", "bundle",
    "strings", "matrices", "bundles", "lists", "array", "arrays",
    "void", "numeric",
})

# Type word -> naming category used in the configuration.
TYPE_CATEGORY: Dict[str, str] = {
    "scalar": "scalar",
    "numeric": "scalar",
    "series": "series",
    "matrix": "matrix",
    "string": "string",
    "list": "list",
    "bundle": "bundle",
    "strings": "array",
    "matrices": "array",
    "bundles": "array",
    "lists": "array",
    "array": "array",
    "arrays": "array",
}

KEYWORDS: FrozenSet[str] = frozenset({
    "function", "end", "return", "if", "elif", "else", "endif",
    "loop", "endloop", "while", "for", "foreach", "break", "continue",
    "catch", "const", "debug", "quit", "include",
})

# Commands whose body runs until a matching ``end <command>`` line.
END_BLOCK_COMMANDS: FrozenSet[str] = frozenset({
    "foreign", "mle", "nls", "gmm", "system", "restrict", "kalman",
    "mpi", "plot", "gpbuild", "outfile",
})

# Blocks whose body is not Hansl and is skipped by token-level checks.
VERBATIM_BLOCKS: FrozenSet[str] = frozenset({"foreign"})

# A selection of Gretl commands. A command word at the start of a statement
# takes space-separated arguments, so "cmd (x)" is not a function call.
COMMANDS: FrozenSet[str] = frozenset({
    "adf", "append", "ar", "ar1", "arch", "arima", "biprobit", "boxplot",
    "break", "catch", "chow", "clear", "coeffsum", "coint", "coint2",
    "corr", "corrgm", "cusum", "data", "dataset", "delete", "diff",
    "difftest", "discrete", "dpanel", "dummify", "duration", "elif",
    "else", "end", "endif", "endloop", "eqnprint", "equation", "estimate",
    "eval", "fcast", "flush", "foreign", "fractint", "freq", "function",
    "garch", "genr", "gmm", "gnuplot", "gpbuild", "graphpg", "hausman",
    "heckit", "help", "hfplot", "hsk", "hurst", "if", "include", "info",
    "intreg", "join", "kdplot", "kpss", "labels", "lad", "lags", "ldiff",
    "leverage", "levinlin", "logistic", "logit", "logs", "loop", "mahal",
    "makepkg", "marksample", "meantest", "midasreg", "mle", "modeltab",
    "modprint", "modtest", "mpi", "mpols", "negbin", "nls", "normtest",
    "nulldata", "ols", "omit", "open", "orthdev", "outfile", "panel",
    "panplot", "pca", "pergm", "pkg", "plot", "poisson", "print",
    "printf", "probit", "pvalue", "qlrtest", "qqplot", "quantreg", "quit",
    "rename", "reset", "restrict", "rmplot", "run", "runs", "scatters",
    "sdiff", "set", "setinfo", "setobs", "setopt", "setmiss", "shell",
    "smpl", "spearman", "sprintf", "square", "sscanf", "store", "summary",
    "system", "tabprint", "textplot", "tobit", "tsls", "var", "varlist",
    "vartest", "vecm", "vif", "wls", "xcorrgm", "xtab",
})

# A selection of Gretl built-in functions.
BUILTIN_FUNCTIONS: FrozenSet[str] = frozenset({
    "abs", "acos", "acosh", "aggregate", "argname", "array", "asin",
    "asinh", "atan", "atan2", "atanh", "atof", "bessel", "BFGSmax",
    "BFGSmin", "binary", "bkfilt", "boxcox", "bread", "bwrite", "cdemean",
    "cdf", "ceil", "cholesky", "chowlin", "cmult", "cnorm", "cnumber",
    "cols", "colname", "colnames", "corr", "corrgm", "cos", "cosh", "cov",
    "critical", "cum", "cumsum", "deseas", "det", "diag", "diagcat",
    "diff", "digamma", "dnorm", "dsort", "dummify", "eigen", "eigengen",
    "eigensym", "errmsg", "exists", "exp", "fcstats", "fdjac", "feval",
    "fft", "ffti", "filter", "firstobs", "fixname", "floor", "fracdiff",
    "fzero", "gammafun", "genseries", "getenv", "getinfo", "getline",
    "ghk", "gini", "ginv", "halton", "hdprod", "hfdiff", "hflags",
    "hpfilt", "I", "imaxc", "imaxr", "imhof", "iminc", "iminr", "inbundle",
    "infnorm", "inlist", "instring", "int", "inv", "invcdf", "invmills",
    "invpd", "irf", "irr", "isconst", "isdigit", "isnan", "isnull",
    "isodate", "jsonget", "jsongetb", "juldate", "kdensity", "kfilter",
    "kmeier", "kpsscrit", "ksmooth", "ksimul", "lags", "lastobs", "ldet",
    "ldiff", "lincomb", "ljungbox", "lngamma", "log", "log10", "log2",
    "loess", "logistic", "lower", "lrvar", "max", "maxc", "maxr", "mcorr",
    "mcov", "mcovg", "mean", "meanc", "meanr", "median", "mexp", "min",
    "minc", "minr", "missing", "misszero", "mlag", "mnormal", "mols",
    "monthlen", "movavg", "mpols", "mrandgen", "mread", "mreverse",
    "mrls", "mshape", "msortby", "muniform", "mwrite", "mxtab", "nadarwat",
    "nelem", "ngetenv", "nlines", "NMmax", "NMmin", "nobs", "normal",
    "npv", "NRmax", "NRmin", "nullspace", "numhess", "obs", "obslabel",
    "obsnum", "ok", "onenorm", "ones", "orthdev", "pdf", "pergm", "pmax",
    "pmean", "pmin", "pnobs", "polroots", "polyfit", "princomp", "prodc",
    "prodr", "psd", "psdroot", "pshrink", "pvalue", "pxsum", "qform",
    "qlrpval", "qnorm", "qrdecomp", "quadtable", "quantile", "randgen",
    "randgen1", "randint", "rank", "ranking", "rcond", "readfile", "regsub",
    "remove", "replace", "resample", "round", "rownames", "rows", "sd",
    "sdc", "sdiff", "seasonals", "selifc", "selifr", "seq", "setnote",
    "simann", "sin", "sinh", "skewness", "sort", "sortby", "sqrt", "square",
    "sscanf", "sst", "stack", "stdize", "strftime", "stringify", "strlen",
    "strncmp", "strptime", "strsplit", "strstr", "strstrip", "strsub",
    "strvals", "substr", "sum", "sumall", "sumc", "sumr", "svd", "tan",
    "tanh", "toepsolv", "tolower", "toupper", "tr", "transp", "trimr",
    "typeof", "typestr", "uniform", "uniq", "unvech", "upper", "urcpval",
    "values", "var", "varname", "varnames", "varnum", "varsimul", "vec",
    "vech", "weekday", "wmean", "wsd", "wvar", "xmax", "xmin", "xmlget",
    "zeromiss", "zeros",
})

# Built-in constants that look like identifiers.
BUILTIN_CONSTANTS: FrozenSet[str] = frozenset({
    "const", "pi", "NA", "inf", "nan", "null", "TRUE", "FALSE",
})

RESERVED_NAMES: FrozenSet[str] = (
    KEYWORDS | TYPE_WORDS | BUILTIN_FUNCTIONS | BUILTIN_CONSTANTS
)
